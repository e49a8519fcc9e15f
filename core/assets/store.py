"""
Blueprint Store
File-based blueprint storage with versioning

Keeps every saved state of a blueprint so patched results can be inspected
or reverted outside the editor.
"""
import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List

from core.graph.models import Blueprint
from core.graph.registry import GraphModel

logger = logging.getLogger(__name__)


class BlueprintStoreError(Exception):
    """Raised when a stored blueprint cannot be read or written"""


def store_key(identifier: str) -> str:
    """Directory-safe key for a blueprint name or object path"""
    key = re.sub(r"[^A-Za-z0-9_.-]+", "_", identifier.strip("/"))
    return key or "_"


class BlueprintStore:
    """
    File-based blueprint store

    Storage structure:
    blueprints/
      {key}/
        v1.json
        v2.json
        ...
        current.json  # Latest version
        index.json    # Metadata
    """

    def __init__(self, base_path: str = "blueprints"):
        """
        Initialize blueprint store

        Args:
            base_path: Base directory for blueprint storage
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_blueprint_dir(self, key: str) -> Path:
        return self.base_path / key

    def _get_version_file(self, key: str, version: int) -> Path:
        return self._get_blueprint_dir(key) / f"v{version}.json"

    def _get_current_file(self, key: str) -> Path:
        return self._get_blueprint_dir(key) / "current.json"

    def _get_index_file(self, key: str) -> Path:
        return self._get_blueprint_dir(key) / "index.json"

    def key_for(self, blueprint: Blueprint) -> str:
        return store_key(blueprint.path or blueprint.name)

    def save(self, blueprint: Blueprint) -> int:
        """
        Save a blueprint as a new version

        Args:
            blueprint: Blueprint to save

        Returns:
            Version number written
        """
        key = self.key_for(blueprint)
        history = self.get_version_history(key)
        version = (history[-1] + 1) if history else 1

        blueprint_dir = self._get_blueprint_dir(key)
        blueprint_dir.mkdir(parents=True, exist_ok=True)

        data = blueprint.model_dump(mode="json")
        try:
            with open(self._get_version_file(key, version), 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            with open(self._get_current_file(key), 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            self._save_index(key, blueprint, version)
        except OSError as e:
            raise BlueprintStoreError(f"Could not save blueprint '{blueprint.name}': {e}") from e

        logger.info(f"Saved blueprint '{blueprint.name}' as version {version}")
        return version

    def load(self, key: str, version: Optional[int] = None) -> Optional[Blueprint]:
        """
        Load a blueprint

        Args:
            key: Store key, blueprint name or object path
            version: Specific version to read (None = latest)

        Returns:
            Blueprint or None if not found
        """
        key = store_key(key)
        if version is None:
            file_path = self._get_current_file(key)
        else:
            file_path = self._get_version_file(key, version)

        if not file_path.exists():
            return None

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return Blueprint(**data)
        except (OSError, TypeError, ValueError) as e:
            raise BlueprintStoreError(f"Could not read {file_path}: {e}") from e

    def delete(self, key: str) -> bool:
        """
        Delete a blueprint (and all versions)

        Returns:
            True if deleted, False if not found
        """
        blueprint_dir = self._get_blueprint_dir(store_key(key))
        if not blueprint_dir.exists():
            return False

        shutil.rmtree(blueprint_dir)
        return True

    def list_blueprints(self) -> List[Blueprint]:
        """List current versions of all stored blueprints, skipping corrupted ones"""
        blueprints = []

        for blueprint_dir in sorted(self.base_path.iterdir()):
            if not blueprint_dir.is_dir():
                continue
            if not self._get_current_file(blueprint_dir.name).exists():
                continue

            try:
                blueprint = self.load(blueprint_dir.name)
            except BlueprintStoreError as e:
                logger.warning(f"Skipping corrupted blueprint '{blueprint_dir.name}': {e}")
                continue
            if blueprint:
                blueprints.append(blueprint)

        return blueprints

    def get_version_history(self, key: str) -> List[int]:
        """List of available versions for a blueprint"""
        blueprint_dir = self._get_blueprint_dir(store_key(key))
        if not blueprint_dir.exists():
            return []

        versions = []
        for file in blueprint_dir.glob("v*.json"):
            try:
                versions.append(int(file.stem[1:]))  # Remove 'v' prefix
            except ValueError:
                continue

        return sorted(versions)

    def load_into(self, graph_model: GraphModel) -> List[Blueprint]:
        """Register the current version of every stored blueprint with the model"""
        blueprints = self.list_blueprints()
        for blueprint in blueprints:
            graph_model.add_blueprint(blueprint)
        return blueprints

    def _save_index(self, key: str, blueprint: Blueprint, version: int):
        index_data = {
            "key": key,
            "name": blueprint.name,
            "path": blueprint.path,
            "version": version,
            "variable_count": len(blueprint.variables),
            "graph_count": len(blueprint.graphs),
            "node_count": len(blueprint.all_nodes()),
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

        with open(self._get_index_file(key), 'w', encoding='utf-8') as f:
            json.dump(index_data, f, indent=2)
