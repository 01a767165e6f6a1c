"""Named-event channels between acclink and the host's linking agent.

- :class:`Channel` -- abstract contract and shared delivery rules.
- :class:`MemoryChannel` -- in-process transport with an optional scripted agent.
- :class:`HttpChannel` -- httpx transport over an NDJSON event stream.
- :func:`create_channel` -- builds the transport for a resolved config.
"""

from __future__ import annotations

from acclink.channel.base import (
    BROWSER_CLOSED,
    CANCEL,
    CREDENTIALS,
    DISCONNECT,
    LINK_ACCOUNT,
    SERVER_ERROR,
    Channel,
    namespace_path,
)
from acclink.channel.http import HttpChannel
from acclink.channel.memory import MemoryChannel
from acclink.config import resolve_credential
from acclink.models import GlobalConfig


def create_channel(config: GlobalConfig, plugin_name: str) -> Channel:
    """Create the HTTP channel for *plugin_name* on the configured server.

    Raises:
        ConfigError: If ``server.token_source`` is set but cannot be resolved.
    """
    token = None
    if config.server.token_source:
        token = resolve_credential(config.server.token_source)
    return HttpChannel(config.server, plugin_name, token=token)


__all__ = [
    "BROWSER_CLOSED",
    "CANCEL",
    "CREDENTIALS",
    "DISCONNECT",
    "LINK_ACCOUNT",
    "SERVER_ERROR",
    "Channel",
    "HttpChannel",
    "MemoryChannel",
    "create_channel",
    "namespace_path",
]
