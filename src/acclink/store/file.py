"""Local JSON file store.

One file per plugin under ``<data_dir>/plugin-config/``, holding the JSON
array the host would otherwise keep in its config editor. Files may contain
session cookies, so they are written atomically with ``0o600`` permissions.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from acclink.config import atomic_write, get_plugin_config_dir
from acclink.exceptions import ConfigError
from acclink.models import SaveResult
from acclink.store.base import ConfigStore


class FileConfigStore(ConfigStore):
    """Store plugin configuration lists as local JSON files.

    Args:
        root: Directory to keep files in. Defaults to
            :func:`~acclink.config.get_plugin_config_dir`.

    Example::

        store = FileConfigStore(tmp_path)
        store.save("homebridge-nest-cam", [{"platform": "Nest-cam"}])
        assert store.load("homebridge-nest-cam") == [{"platform": "Nest-cam"}]
    """

    def __init__(self, root: Optional[Path] = None) -> None:
        self._root = root

    def path_for(self, plugin_id: str) -> Path:
        """File holding *plugin_id*'s list. Scoped names (``@scope/x``) are quoted."""
        root = self._root if self._root is not None else get_plugin_config_dir()
        return root / f"{quote(plugin_id, safe='')}.json"

    def load(self, plugin_id: str) -> list[dict[str, Any]]:
        path = self.path_for(plugin_id)
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            raise ConfigError(f"Invalid plugin config at {path}: {exc}") from exc
        if not isinstance(data, list):
            raise ConfigError(f"Plugin config at {path} must be a JSON array")
        return data

    def save(self, plugin_id: str, config_list: list[dict[str, Any]]) -> SaveResult:
        path = self.path_for(plugin_id)
        try:
            atomic_write(path, json.dumps(config_list, indent=2) + "\n", mode=0o600)
        except OSError as exc:
            return SaveResult(ok=False, error=f"Cannot write {path}: {exc}")
        return SaveResult(ok=True)
