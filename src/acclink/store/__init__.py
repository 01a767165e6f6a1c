"""Plugin configuration stores.

- :class:`ConfigStore` -- the load/save contract used by linking sessions.
- :class:`FileConfigStore` -- JSON files in the acclink data directory.
- :class:`HttpConfigStore` -- the host server's config-editor endpoint.
- :func:`create_store` -- picks the backend named by ``GlobalConfig.store``.
"""

from __future__ import annotations

from acclink.exceptions import ConfigError
from acclink.models import GlobalConfig
from acclink.store.base import ConfigStore
from acclink.store.file import FileConfigStore
from acclink.store.http import HttpConfigStore


def create_store(config: GlobalConfig) -> ConfigStore:
    """Build the store backend selected by *config*.

    Raises:
        ConfigError: If ``config.store`` names an unknown backend.
    """
    if config.store == "file":
        return FileConfigStore()
    if config.store == "http":
        return HttpConfigStore(config.server)
    raise ConfigError(f"Unknown store backend '{config.store}': must be 'file' or 'http'")


__all__ = ["ConfigStore", "FileConfigStore", "HttpConfigStore", "create_store"]
