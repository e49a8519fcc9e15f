import json

import pytest

from core.assets import BlueprintStore, BlueprintStoreError, store_key
from core.graph import GraphModel


@pytest.fixture
def store(tmp_path):
    return BlueprintStore(str(tmp_path / "blueprints"))


def test_store_key():
    assert store_key("/Game/Blueprints/BP_Player") == "Game_Blueprints_BP_Player"
    assert store_key("BP Door #2") == "BP_Door_2"
    assert store_key("/") == "_"


def test_save_creates_versions(store, blueprint):
    assert store.save(blueprint) == 1
    blueprint.variables[0].name = "Armor"
    assert store.save(blueprint) == 2

    key = store.key_for(blueprint)
    assert store.get_version_history(key) == [1, 2]
    assert store.load(key).variables[0].name == "Armor"
    assert store.load(key, version=1).variables[0].name == "OldVar"

    index = json.loads((store.base_path / key / "index.json").read_text(encoding="utf-8"))
    assert index["version"] == 2
    assert index["node_count"] == 5
    assert index["saved_at"].endswith("+00:00")


def test_load_accepts_object_path(store, blueprint):
    store.save(blueprint)

    loaded = store.load("/Game/Blueprints/TestBlueprint")

    assert loaded.model_dump() == blueprint.model_dump()


def test_missing_blueprint(store):
    assert store.load("BP_Nope") is None
    assert store.get_version_history("BP_Nope") == []
    assert not store.delete("BP_Nope")


def test_delete(store, blueprint):
    store.save(blueprint)

    assert store.delete(store.key_for(blueprint))
    assert store.list_blueprints() == []


def test_corrupted_blueprint_raises_and_is_skipped_in_listing(store, blueprint, caplog):
    store.save(blueprint)
    broken = store.base_path / "BP_Broken"
    broken.mkdir()
    (broken / "current.json").write_text("{ not json", encoding="utf-8")

    with pytest.raises(BlueprintStoreError):
        store.load("BP_Broken")

    listed = store.list_blueprints()
    assert [bp.name for bp in listed] == ["TestBlueprint"]
    assert "Skipping corrupted blueprint" in caplog.text


def test_load_into_model(store, blueprint):
    store.save(blueprint)
    model = GraphModel()

    loaded = store.load_into(model)

    assert model.resolve_blueprint("TestBlueprint") is loaded[0]
