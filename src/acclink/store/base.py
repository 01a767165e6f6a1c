"""Abstract base class for plugin configuration stores.

A store persists the full configuration list of one plugin, keyed by the
plugin's package name. The linking session only ever needs two
operations: read the current list when a session is created, and write the
whole list back after credentials arrive or the account is unlinked.

:meth:`ConfigStore.save` reports failure through
:class:`~acclink.models.SaveResult` instead of raising. The session keeps
its in-memory record either way; a later save can repair the remote copy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from acclink.models import SaveResult


class ConfigStore(ABC):
    """Reads and writes the configuration list of a plugin."""

    @abstractmethod
    def load(self, plugin_id: str) -> list[dict[str, Any]]:
        """Return the stored configuration list for *plugin_id*.

        Returns:
            The list of config objects, ``[]`` when nothing is stored.

        Raises:
            ConfigError: If stored data exists but is not a JSON list.
            ConnectionError_: If a remote store cannot be reached.
        """
        ...

    @abstractmethod
    def save(self, plugin_id: str, config_list: list[dict[str, Any]]) -> SaveResult:
        """Replace the stored configuration list for *plugin_id*.

        Returns:
            ``SaveResult(ok=True)`` on success, otherwise ``ok=False`` with
            the failure reason in ``error``.
        """
        ...
