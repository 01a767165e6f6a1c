"""Abstract base class for named-event channels to a linking agent.

A channel is a bidirectional pipe of named events between this client and
the per-plugin linking agent running on the host server. Concrete
transports subclass :class:`Channel` and implement :meth:`Channel._transmit`
(outbound) and feed inbound events to :meth:`Channel._dispatch`.

The base class owns the delivery rules every transport shares:

- Handlers registered with :meth:`Channel.on` persist until removed with
  :meth:`Channel.off` or until the channel is closed.
- Inbound events are queued and dispatched one at a time. A handler that
  causes another event to arrive (for example by sending a reply to an
  in-process agent) sees that event only after it returns.
- Transport loss is reported as a synthetic ``disconnect`` event, exactly
  once. After that, and after :meth:`Channel.close`, nothing is delivered.

See Also:
    :class:`~acclink.channel.memory.MemoryChannel` -- in-process transport.
    :class:`~acclink.channel.http.HttpChannel` -- NDJSON over HTTP.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict, deque
from typing import Any, Callable

from acclink.output import debug

# Outbound events
LINK_ACCOUNT = "link-account"
CANCEL = "cancel"

# Inbound events (the step events are the LinkingStep wire values)
CREDENTIALS = "credentials"
SERVER_ERROR = "server_error"
BROWSER_CLOSED = "browser_closed"
DISCONNECT = "disconnect"

Handler = Callable[[Any], None]


def namespace_path(prefix: str, plugin_name: str) -> str:
    """Build the stable channel path for a plugin.

    Example::

        >>> namespace_path("plugins/custom-plugins", "homebridge-nest-cam")
        '/plugins/custom-plugins/homebridge-nest-cam'
    """
    segments = [seg.strip("/") for seg in (prefix, plugin_name)]
    return "/" + "/".join(seg for seg in segments if seg)


class Channel(ABC):
    """Named-event pipe shared by every transport.

    Args:
        namespace: The channel path, usually built with :func:`namespace_path`.
    """

    def __init__(self, namespace: str) -> None:
        self._namespace = namespace
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._inbox: deque[tuple[str, Any]] = deque()
        self._dispatching = False
        self._closed = False
        self._disconnected = False

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    @property
    def disconnected(self) -> bool:
        """Whether the synthetic ``disconnect`` event has been delivered."""
        return self._disconnected

    def on(self, event: str, handler: Handler) -> None:
        """Register *handler* for every future arrival of *event*."""
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Handler) -> None:
        """Remove a handler registered with :meth:`on`. Unknown handlers are ignored."""
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def send(self, event: str, payload: Any = None) -> None:
        """Send *event* to the agent. Fire-and-forget, no acknowledgement.

        Events sent after the channel is closed or disconnected are dropped.
        """
        if self._closed or self._disconnected:
            debug(f"Dropping '{event}' on {self._namespace}: channel is not open")
            return
        debug(f"-> {event} ({self._namespace})")
        self._transmit(event, payload)

    def listen(self) -> None:
        """Block while the transport delivers inbound events.

        Transports that push events synchronously (such as
        :class:`~acclink.channel.memory.MemoryChannel`) have nothing to
        wait for, so the default returns immediately.
        """

    def close(self) -> None:
        """Release the channel. Idempotent; nothing is delivered afterwards."""
        if self._closed:
            return
        self._closed = True
        self._inbox.clear()
        debug(f"Closing channel {self._namespace}")
        self._release()

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _transmit(self, event: str, payload: Any) -> None:
        """Deliver an outbound event over the underlying transport."""
        ...

    def _release(self) -> None:
        """Free transport resources. Called once from :meth:`close`."""

    def _dispatch(self, event: str, payload: Any = None) -> None:
        """Queue an inbound event and drain the queue unless already draining."""
        if self._closed or self._disconnected:
            return
        self._inbox.append((event, payload))
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._inbox:
                name, data = self._inbox.popleft()
                if self._closed or self._disconnected:
                    break
                if name == DISCONNECT:
                    self._disconnected = True
                    self._inbox.clear()
                debug(f"<- {name} ({self._namespace})")
                for handler in list(self._handlers.get(name, ())):
                    handler(data)
        finally:
            self._dispatching = False

    def _transport_lost(self) -> None:
        """Report transport loss as a single synthetic ``disconnect``."""
        self._dispatch(DISCONNECT)
