"""Channel transport over plain HTTP using httpx.

The host server exposes one event endpoint per plugin namespace:

- ``POST <namespace>/events`` with a JSON body ``{"event": ..., "data": ...}``
  sends an event to the linking agent.
- ``GET <namespace>/events`` returns a long-lived
  ``application/x-ndjson`` stream; each line is one inbound event in the
  same ``{"event": ..., "data": ...}`` shape.

Any :class:`httpx.HTTPError` on either path, or the server ending the
stream, is treated as transport loss and reported once as ``disconnect``.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from acclink.channel.base import Channel, namespace_path
from acclink.models import ServerConfig
from acclink.output import debug


def _parse_line(line: str) -> Optional[tuple[str, Any]]:
    """Decode one NDJSON event line, returning ``None`` if it is malformed."""
    try:
        message = json.loads(line)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        return None
    return message["event"], message.get("data")


class HttpChannel(Channel):
    """Channel backed by an httpx client and an NDJSON event stream.

    The underlying :class:`httpx.Client` is created eagerly but opens no
    connection until the first :meth:`send` or :meth:`listen`.

    Args:
        server: Server location, timeout, and TLS settings.
        plugin_name: Plugin package name; last segment of the namespace.
        token: Optional bearer token for the host server.
        transport: Optional httpx transport (``httpx.MockTransport`` in tests).

    Example::

        channel = HttpChannel(ServerConfig(url="http://localhost:8581"), "homebridge-nest-cam")
        channel.on("username", on_username)
        channel.send("link-account")
        channel.listen()
    """

    def __init__(
        self,
        server: ServerConfig,
        plugin_name: str,
        token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(namespace_path(server.namespace_prefix, plugin_name))
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._timeout = server.timeout
        self._listening = False
        self._client = httpx.Client(
            base_url=server.url,
            timeout=server.timeout,
            verify=server.verify_ssl,
            headers=headers,
            transport=transport,
        )

    @property
    def events_path(self) -> str:
        return f"{self.namespace}/events"

    def listen(self) -> None:
        """Dispatch streamed events until the channel closes or disconnects."""
        if self.closed or self.disconnected:
            return
        self._listening = True
        try:
            with self._client.stream(
                "GET",
                self.events_path,
                headers={"Accept": "application/x-ndjson"},
                timeout=httpx.Timeout(self._timeout, read=None),
            ) as response:
                response.raise_for_status()
                for line in response.iter_lines():
                    if not line.strip():
                        continue
                    parsed = _parse_line(line)
                    if parsed is None:
                        debug(f"Skipping malformed event line: {line!r}")
                        continue
                    self._dispatch(*parsed)
                    if self.closed or self.disconnected:
                        return
        except httpx.HTTPError as exc:
            if not self.closed:
                debug(f"Event stream failed on {self.namespace}: {exc}")
        finally:
            self._listening = False
            if self.closed:
                self._client.close()
        if not self.closed:
            # The server ended the stream or the request failed.
            self._transport_lost()

    def _transmit(self, event: str, payload: Any) -> None:
        try:
            response = self._client.post(
                self.events_path, json={"event": event, "data": payload}
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            debug(f"Sending '{event}' failed on {self.namespace}: {exc}")
            self._transport_lost()

    def _release(self) -> None:
        # listen() closes the client itself once the open stream unwinds.
        if not self._listening:
            self._client.close()
