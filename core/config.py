"""
SurrealPilot settings

Desktop mode writes ~/.surrealpilot/config.json with the local server port
and API key. Environment variables override the file.
"""
from typing import Optional, Dict, Any
from pathlib import Path
import json
import logging
import os

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8000
CONFIG_DIR_NAME = ".surrealpilot"
CONFIG_FILE_NAME = "config.json"

ENV_API_URL = "SURREALPILOT_API_URL"
ENV_API_KEY = "SURREALPILOT_API_KEY"
ENV_LOG_LEVEL = "SURREALPILOT_LOG_LEVEL"


class PilotSettings(BaseModel):
    """Runtime settings for the patch engine and backend client"""
    port: int = Field(default=DEFAULT_PORT, description="Local desktop server port")
    api_url: Optional[str] = Field(None, description="Backend base URL (overrides port)")
    api_key: Optional[str] = Field(None, description="Bearer token for the backend")
    timeout_s: float = Field(default=30.0, description="HTTP request timeout in seconds")
    transaction_label: str = Field(default="Apply AI Patch", description="Undo label for applied patches")
    undo_depth: int = Field(default=50, description="Maximum undo history entries")
    log_level: str = Field(default="INFO", description="Logging level name")

    @property
    def base_url(self) -> str:
        if self.api_url:
            return self.api_url.rstrip("/")
        return f"http://127.0.0.1:{self.port}"


def default_config_path() -> Path:
    """~/.surrealpilot/config.json, with home taken from USERPROFILE then HOME"""
    home = os.environ.get("USERPROFILE") or os.environ.get("HOME") or str(Path.home())
    return Path(home) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def load_settings(path: Optional[str] = None) -> PilotSettings:
    """
    Load settings from the config file and environment

    Args:
        path: Config file path (None = default location)

    Returns:
        PilotSettings (defaults when no file exists)
    """
    config_path = Path(path) if path else default_config_path()
    values: Dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict):
                values.update({key: value for key, value in data.items() if key in PilotSettings.model_fields})
            else:
                logger.warning(f"Ignoring config {config_path}: not a JSON object")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable config {config_path}: {e}")

    if os.environ.get(ENV_API_URL):
        values["api_url"] = os.environ[ENV_API_URL]
    if os.environ.get(ENV_API_KEY):
        values["api_key"] = os.environ[ENV_API_KEY]
    if os.environ.get(ENV_LOG_LEVEL):
        values["log_level"] = os.environ[ENV_LOG_LEVEL]

    return PilotSettings(**values)
