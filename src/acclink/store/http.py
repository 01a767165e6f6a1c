"""Config-editor HTTP store.

Talks to the host server's config editor:

- ``GET  /api/config-editor/plugin/<name>`` returns the plugin's config list.
- ``POST /api/config-editor/plugin/<name>`` replaces it with the request body.

The plugin name is URL-encoded as a single path segment, so scoped
package names such as ``@scope/plugin`` are safe.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from acclink.config import resolve_credential
from acclink.exceptions import ConfigError, ConnectionError_
from acclink.models import SaveResult, ServerConfig
from acclink.output import debug
from acclink.store.base import ConfigStore


class HttpConfigStore(ConfigStore):
    """Read and write plugin configuration through the host's HTTP API.

    Args:
        server: Server location, timeout, TLS, and token source.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        server: ServerConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._server = server
        self._transport = transport
        self._token: Optional[str] = None

    @staticmethod
    def endpoint(plugin_id: str) -> str:
        return f"/api/config-editor/plugin/{quote(plugin_id, safe='')}"

    def load(self, plugin_id: str) -> list[dict[str, Any]]:
        try:
            with self._client() as client:
                response = client.get(self.endpoint(plugin_id))
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ConfigError(
                f"Config editor returned HTTP {exc.response.status_code} for '{plugin_id}'"
            ) from exc
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Cannot reach {self._server.url}: {exc}") from exc
        except ValueError as exc:
            raise ConfigError(f"Config editor returned invalid JSON for '{plugin_id}'") from exc
        if not isinstance(data, list):
            raise ConfigError(f"Config editor returned a non-list config for '{plugin_id}'")
        return data

    def save(self, plugin_id: str, config_list: list[dict[str, Any]]) -> SaveResult:
        try:
            with self._client() as client:
                response = client.post(self.endpoint(plugin_id), json=config_list)
                response.raise_for_status()
        except ConfigError as exc:
            return SaveResult(ok=False, error=str(exc))
        except httpx.HTTPStatusError as exc:
            return SaveResult(ok=False, error=f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            return SaveResult(ok=False, error=str(exc) or type(exc).__name__)
        debug(f"Saved {len(config_list)} config record(s) for {plugin_id}")
        return SaveResult(ok=True)

    def _client(self) -> httpx.Client:
        headers = {"Accept": "application/json"}
        token = self._resolve_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return httpx.Client(
            base_url=self._server.url,
            timeout=self._server.timeout,
            verify=self._server.verify_ssl,
            headers=headers,
            transport=self._transport,
        )

    def _resolve_token(self) -> Optional[str]:
        if self._token is None and self._server.token_source:
            self._token = resolve_credential(self._server.token_source)
        return self._token
