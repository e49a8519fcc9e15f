import json

import pytest

from core.config import PilotSettings, default_config_path, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SURREALPILOT_API_URL", "SURREALPILOT_API_KEY", "SURREALPILOT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_file_missing(tmp_path):
    settings = load_settings(str(tmp_path / "missing.json"))

    assert settings == PilotSettings()
    assert settings.base_url == "http://127.0.0.1:8000"
    assert settings.transaction_label == "Apply AI Patch"


def test_reads_desktop_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"port": 8123, "api_key": "secret", "theme": "dark"}), encoding="utf-8")

    settings = load_settings(str(path))

    assert settings.port == 8123
    assert settings.api_key == "secret"
    assert settings.base_url == "http://127.0.0.1:8123"


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"api_key": "from-file"}), encoding="utf-8")
    monkeypatch.setenv("SURREALPILOT_API_URL", "https://surrealpilot.example/")
    monkeypatch.setenv("SURREALPILOT_API_KEY", "from-env")
    monkeypatch.setenv("SURREALPILOT_LOG_LEVEL", "DEBUG")

    settings = load_settings(str(path))

    assert settings.api_key == "from-env"
    assert settings.log_level == "DEBUG"
    assert settings.base_url == "https://surrealpilot.example"


@pytest.mark.parametrize("content", ["[1, 2]", "{ broken"])
def test_unusable_file_is_ignored(tmp_path, caplog, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")

    settings = load_settings(str(path))

    assert settings == PilotSettings()
    assert "Ignoring" in caplog.text


def test_default_path_prefers_userprofile(monkeypatch, tmp_path):
    monkeypatch.setenv("USERPROFILE", str(tmp_path / "win"))
    monkeypatch.setenv("HOME", str(tmp_path / "unix"))

    assert default_config_path() == tmp_path / "win" / ".surrealpilot" / "config.json"

    monkeypatch.delenv("USERPROFILE")
    assert default_config_path() == tmp_path / "unix" / ".surrealpilot" / "config.json"
