"""In-process channel.

:class:`MemoryChannel` keeps outbound events in a list and lets the caller
push inbound events directly. An optional *responder* plays the part of the
linking agent: it is called for every outbound event and returns the events
the agent would push back, which are then delivered in order.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from acclink.channel.base import Channel

Responder = Callable[[str, Any], Optional[Iterable[tuple[str, Any]]]]


class MemoryChannel(Channel):
    """Channel whose "agent" lives in the same process.

    Args:
        namespace: Channel path, only used for diagnostics.
        responder: Optional callable ``(event, payload) -> [(event, payload), ...]``
            invoked for every outbound event.

    Example::

        channel = MemoryChannel()
        channel.on("username", lambda _: print("asked for username"))
        channel.receive("username")
        channel.send("username", {"username": "a@b.com"})
        assert channel.sent == [("username", {"username": "a@b.com"})]
    """

    def __init__(
        self,
        namespace: str = "/memory",
        responder: Optional[Responder] = None,
    ) -> None:
        super().__init__(namespace)
        self._responder = responder
        self.sent: list[tuple[str, Any]] = []

    @property
    def sent_events(self) -> list[str]:
        """Names of every event sent so far, in order."""
        return [name for name, _ in self.sent]

    def receive(self, event: str, payload: Any = None) -> None:
        """Deliver an inbound event as if the agent had pushed it."""
        self._dispatch(event, payload)

    def drop(self) -> None:
        """Simulate loss of the underlying transport."""
        self._transport_lost()

    def _transmit(self, event: str, payload: Any) -> None:
        self.sent.append((event, payload))
        if self._responder is None:
            return
        for reply, data in self._responder(event, payload) or ():
            self._dispatch(reply, data)
