"""Step state machine for the account-linking flow.

Every function here is pure: it takes a :class:`~acclink.models.SessionState`
and returns the next one without touching the channel, the config record, or
the store. :class:`~acclink.linking.session.LinkingSessionController` applies
the side effects.

Inbound transitions (:func:`apply_event`)::

    username / password / totp  -> step := event, waiting := False
                                   retry message if the step was already pending
    credentials                 -> step := NONE, in-flight := False, bundle out
    server_error                -> linking error with the server's message
    browser_closed, disconnect  -> linking error, only while in-flight
    anything else               -> unchanged

Events that are not meaningful in the current state leave it unchanged
rather than raising, so every delivery has a defined outcome.
"""

from __future__ import annotations

from typing import Any, NamedTuple, Optional

from pydantic import ValidationError

from acclink.channel.base import BROWSER_CLOSED, CREDENTIALS, DISCONNECT, SERVER_ERROR
from acclink.exceptions import StepValidationError
from acclink.linking.steps import rules_for
from acclink.models import CredentialBundle, LinkingStep, SessionState

SETUP_WAITING_MESSAGE = "Setting things up, please wait..."
LOGIN_WAITING_MESSAGE = "Logging in, please wait..."
DISCONNECTED_MESSAGE = "Server Disconnected."
UNKNOWN_ERROR_MESSAGE = "The linking agent reported an unknown error."

_STEP_EVENTS: dict[str, LinkingStep] = {
    LinkingStep.USERNAME.value: LinkingStep.USERNAME,
    LinkingStep.PASSWORD.value: LinkingStep.PASSWORD,
    LinkingStep.TOTP.value: LinkingStep.TOTP,
}


class Transition(NamedTuple):
    """Result of applying one inbound event.

    ``credentials`` is set only on the terminal success transition.
    """

    state: SessionState
    credentials: Optional[CredentialBundle] = None


def apply_event(state: SessionState, event: str, payload: Any = None) -> Transition:
    """Compute the state that follows *event* arriving in *state*."""
    step = _STEP_EVENTS.get(event)
    if step is not None:
        return Transition(_request_step(state, step))

    if event == CREDENTIALS:
        try:
            bundle = CredentialBundle.model_validate(payload)
        except ValidationError as exc:
            return Transition(_fail(state, f"Received malformed credentials: {exc.error_count()} error(s)"))
        done = state.model_copy(
            update={
                "step": LinkingStep.NONE,
                "waiting": False,
                "doing_account_linking": False,
            }
        )
        return Transition(done, bundle)

    if event == SERVER_ERROR:
        return Transition(_fail(state, _error_message(payload)))

    if event == BROWSER_CLOSED:
        if not state.doing_account_linking:
            return Transition(state)
        return Transition(_fail(state, _error_message(payload)))

    if event == DISCONNECT:
        if not state.doing_account_linking:
            return Transition(state)
        return Transition(_fail(state, DISCONNECTED_MESSAGE))

    return Transition(state)


def start(state: SessionState) -> SessionState:
    """Open a fresh flow: clear errors, nothing pending, waiting for the agent."""
    return state.model_copy(
        update={
            "step": LinkingStep.NONE,
            "field_error_message": "",
            "account_linking_error": False,
            "account_linking_error_message": "",
            "waiting": True,
            "waiting_message": SETUP_WAITING_MESSAGE,
            "doing_account_linking": True,
        }
    )


def submit(state: SessionState, value: Optional[str]) -> tuple[SessionState, str, dict[str, str]]:
    """Validate *value* for the pending step.

    Returns:
        ``(next_state, event, payload)`` where *event* is the pending step's
        wire name and *payload* is ``{<field>: value}``. The step itself does
        not change; only the agent's next event moves it.

    Raises:
        StepValidationError: If no step is pending, the session has already
            failed, or the value does not pass the step's validator.
    """
    if state.step == LinkingStep.NONE:
        raise StepValidationError(state.step, "No step is pending.")
    if state.account_linking_error:
        raise StepValidationError(
            state.step,
            "The linking session has failed; start again or configure the plugin manually.",
        )
    rules = rules_for(state.step)
    reason = rules.validate(value)
    if reason is not None:
        raise StepValidationError(state.step, reason)
    return state.model_copy(update={"waiting": True}), state.step.value, {rules.field: value}


def idle(state: SessionState) -> SessionState:
    """Nothing in flight and nothing pending."""
    return state.model_copy(
        update={
            "step": LinkingStep.NONE,
            "waiting": False,
            "doing_account_linking": False,
        }
    )


def _request_step(state: SessionState, step: LinkingStep) -> SessionState:
    rules = rules_for(step)
    update: dict[str, Any] = {
        "step": step,
        "waiting": False,
        "field_error_message": rules.retry_message if state.step == step else "",
    }
    if step == LinkingStep.USERNAME:
        update["waiting_message"] = LOGIN_WAITING_MESSAGE
    return state.model_copy(update=update)


def _fail(state: SessionState, message: str) -> SessionState:
    return state.model_copy(
        update={
            "account_linking_error": True,
            "account_linking_error_message": message,
        }
    )


def _error_message(payload: Any) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if message:
            return str(message)
    elif isinstance(payload, str) and payload:
        return payload
    return UNKNOWN_ERROR_MESSAGE
