"""Linking session controller.

:class:`LinkingSessionController` owns one plugin's account-linking session:
the current :class:`~acclink.models.SessionState`, the working
:class:`~acclink.models.PluginConfigRecord`, the channel to the linking
agent, and the store the configuration list is saved to.

Lifecycle::

    controller = LinkingSessionController(target, config_list, channel, store)
    dispose = controller.open_session()     # registers channel handlers
    controller.start_linking()              # -> "link-account"
    ...                                     # agent pushes username/password/totp
    controller.submit_step("a@b.com")       # -> "username" {"username": ...}
    ...                                     # agent pushes credentials -> saved
    dispose()                               # deregisters + closes the channel

The controller is also a context manager that opens on entry and disposes on
exit. Disposal releases the channel exactly once, however the flow ended.

State changes are pushed to listeners registered with :meth:`subscribe`;
this is how a front end (see :mod:`acclink.commands.link`) learns that a
new step is pending or that the flow failed.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Callable, Optional, Union

from acclink.channel.base import (
    BROWSER_CLOSED,
    CANCEL,
    CREDENTIALS,
    DISCONNECT,
    LINK_ACCOUNT,
    SERVER_ERROR,
    Channel,
    Handler,
)
from acclink.exceptions import ConfigError, InvalidUsageError
from acclink.linking import machine
from acclink.models import (
    LinkingStep,
    PluginConfigRecord,
    PluginTarget,
    SaveResult,
    SessionState,
)
from acclink.output import debug, error, success
from acclink.store.base import ConfigStore

StateListener = Callable[[SessionState], None]

INBOUND_EVENTS = (
    LinkingStep.USERNAME.value,
    LinkingStep.PASSWORD.value,
    LinkingStep.TOTP.value,
    CREDENTIALS,
    SERVER_ERROR,
    BROWSER_CLOSED,
    DISCONNECT,
)


class LinkingSessionController:
    """Coordinates the step machine, the channel, and config persistence.

    Args:
        target: The plugin being configured.
        config_list: The plugin's current configuration list (zero or one
            record, as dicts or :class:`PluginConfigRecord`). When empty, a
            fresh ``{platform: alias}`` record is added.
        channel: Channel to the plugin's linking agent. The controller
            takes ownership and closes it on disposal.
        store: Where the configuration list is saved.
        on_close: Called when the host UI should close (after
            :meth:`save_and_close`, :meth:`close`, or :meth:`unlink` from the
            error state).
        on_config_updated: Called after :meth:`save_and_close` persisted.

    Raises:
        ConfigError: If *config_list* holds more than one record.
    """

    def __init__(
        self,
        target: PluginTarget,
        config_list: list[Union[dict[str, Any], PluginConfigRecord]],
        channel: Channel,
        store: ConfigStore,
        on_close: Optional[Callable[[], None]] = None,
        on_config_updated: Optional[Callable[[], None]] = None,
    ) -> None:
        if len(config_list) > 1:
            raise ConfigError(
                f"Expected at most one config record for '{target.name}', "
                f"found {len(config_list)}"
            )
        self._target = target
        self._channel = channel
        self._store = store
        self._on_close = on_close
        self._on_config_updated = on_config_updated
        self._records: list[PluginConfigRecord] = [
            r if isinstance(r, PluginConfigRecord) else PluginConfigRecord.model_validate(r)
            for r in config_list
        ]
        if not self._records:
            self._records.append(PluginConfigRecord(platform=target.alias))
        self._record = self._records[0]
        self._listeners: list[StateListener] = []
        self._handlers: dict[str, Handler] = {}
        self._released = False
        self.last_save: Optional[SaveResult] = None

        self._state = SessionState()
        self._state = self._state.model_copy(
            update={"already_configured": not self.should_offer_linking()}
        )

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def target(self) -> PluginTarget:
        return self._target

    @property
    def state(self) -> SessionState:
        """The current immutable session state."""
        return self._state

    @property
    def record(self) -> PluginConfigRecord:
        """The working record, present even after :meth:`unlink` emptied the list."""
        return self._record

    @property
    def config_list(self) -> list[dict[str, Any]]:
        """The configuration list as it will be saved."""
        return [r.to_config() for r in self._records]

    def should_offer_linking(self) -> bool:
        """Whether the linking flow should be offered to the user.

        ``False`` once the session was marked configured or the record
        already holds a complete credential bundle; otherwise ``True``
        unless a linking error is unresolved. Computed on every call.
        """
        if self._state.already_configured:
            return False
        if self._record.is_linked:
            return False
        return not self._state.account_linking_error

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* with every new state. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def open_session(self) -> Callable[[], None]:
        """Register handlers for every inbound event and return the disposer.

        Calling it again while open registers nothing new.

        Raises:
            InvalidUsageError: If the session was already disposed.
        """
        if self._released:
            raise InvalidUsageError(f"Linking session for '{self._target.name}' is closed")
        if not self._handlers:
            for event in INBOUND_EVENTS:
                handler = partial(self._on_event, event)
                self._channel.on(event, handler)
                self._handlers[event] = handler
            debug(f"Opened linking session on {self._channel.namespace}")
        return self.close_session

    def close_session(self) -> None:
        """Deregister handlers and close the channel. Runs once; later calls are no-ops."""
        if self._released:
            return
        self._released = True
        for event, handler in self._handlers.items():
            self._channel.off(event, handler)
        self._handlers.clear()
        self._channel.close()

    def __enter__(self) -> LinkingSessionController:
        self.open_session()
        return self

    def __exit__(self, *args: object) -> None:
        self.close_session()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def start_linking(self) -> None:
        """Begin a linking flow by sending ``link-account``.

        A no-op while a flow is already in flight. A flow that ended in an
        error is over, so starting again clears it and sends a fresh
        ``link-account``. Opens the session if it is not open yet.
        """
        if self._state.doing_account_linking and not self._state.account_linking_error:
            debug(f"Linking already in progress for {self._target.name}; ignoring start")
            return
        self.open_session()
        self._set_state(machine.start(self._state))
        self._channel.send(LINK_ACCOUNT)

    def submit_step(self, value: Optional[str]) -> None:
        """Send the user's answer for the pending step.

        Raises:
            StepValidationError: If no step is pending, the session failed,
                or *value* is empty.
        """
        next_state, event, payload = machine.submit(self._state, value)
        self._set_state(next_state)
        self._channel.send(event, payload)

    def cancel_manual_override(self) -> None:
        """Stop the automated flow and keep the record for manual configuration.

        The working record becomes the authoritative config (without a
        credential bundle) and the session is marked configured so linking
        is not offered again. Sends exactly one ``cancel``.
        """
        self._update_config()
        self._set_state(
            machine.idle(self._state).model_copy(update={"already_configured": True})
        )
        self._channel.send(CANCEL)

    def unlink(self) -> SaveResult:
        """Drop the credential bundle and the whole configuration list, then save.

        The session state is reset to a fresh idle state. When called from
        the linking-error state, ``on_close`` is invoked afterwards because
        the broken configuration can no longer be trusted.
        """
        was_failed = self._state.account_linking_error
        self._record.google_auth = None
        self._records.clear()
        result = self._persist()
        self._set_state(SessionState())
        if was_failed and self._on_close is not None:
            self._on_close()
        return result

    def save_and_close(self) -> SaveResult:
        """Save the working record as the only config entry and close the host."""
        self._record.platform = self._target.alias
        if self._records:
            self._records[0] = self._record
        else:
            self._records.append(self._record)
        result = self._persist()
        if self._on_close is not None:
            self._on_close()
        if self._on_config_updated is not None:
            self._on_config_updated()
        return result

    def close(self) -> None:
        """Close the host and release the session without saving."""
        if self._on_close is not None:
            self._on_close()
        self.close_session()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_event(self, event: str, payload: Any) -> None:
        transition = machine.apply_event(self._state, event, payload)
        if transition.credentials is None:
            self._set_state(transition.state)
            return
        self._record.google_auth = transition.credentials
        self._update_config()
        self._set_state(transition.state)
        self._persist()

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _update_config(self) -> None:
        self._record.platform = self._target.alias
        if not self._records:
            self._records.append(self._record)

    def _persist(self) -> SaveResult:
        result = self._store.save(self._target.name, self.config_list)
        self.last_save = result
        if result.ok:
            success("Plugin config saved. A restart is required for changes to take effect.")
        else:
            error(f"Failed to save config: {result.error}")
        return result
