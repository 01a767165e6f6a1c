"""Per-step field rules for the linking flow.

Each pending :class:`~acclink.models.LinkingStep` maps to a
:class:`StepFieldRules` entry: which payload field carries the user's
answer, how to validate it, and which message to show when the agent asks
for the same step again (its only way of saying the previous answer was
rejected).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from acclink.exceptions import InvalidUsageError
from acclink.models import LinkingStep

Validator = Callable[[Optional[str]], Optional[str]]


def required(label: str) -> Validator:
    """Return a validator rejecting ``None``, empty, and whitespace-only values."""

    def _validate(value: Optional[str]) -> Optional[str]:
        if value is None or not str(value).strip():
            return f"{label} is required."
        return None

    return _validate


@dataclass(frozen=True)
class StepFieldRules:
    """Validation and messaging for one step.

    Attributes:
        step: The step these rules apply to.
        field: Key of the outbound payload (``{"password": "..."}``).
        label: Human-readable field name used in prompts.
        retry_message: Shown when the agent re-requests this step.
        secret: Whether input should be hidden when prompting.
        validate: Pure check returning a rejection reason or ``None``.
    """

    step: LinkingStep
    field: str
    label: str
    retry_message: str
    secret: bool
    validate: Validator


STEP_RULES: dict[LinkingStep, StepFieldRules] = {
    LinkingStep.USERNAME: StepFieldRules(
        step=LinkingStep.USERNAME,
        field="username",
        label="Email or phone",
        retry_message="Couldn't find your Google Account",
        secret=False,
        validate=required("Email or phone"),
    ),
    LinkingStep.PASSWORD: StepFieldRules(
        step=LinkingStep.PASSWORD,
        field="password",
        label="Password",
        retry_message="Wrong password. Try again.",
        secret=True,
        validate=required("Password"),
    ),
    LinkingStep.TOTP: StepFieldRules(
        step=LinkingStep.TOTP,
        field="totp",
        label="2-Step Verification code",
        retry_message="Wrong code. Try again.",
        secret=True,
        validate=required("2-Step Verification code"),
    ),
}


def rules_for(step: LinkingStep) -> StepFieldRules:
    """Look up the rules for a pending step.

    Raises:
        InvalidUsageError: If *step* is ``LinkingStep.NONE``.
    """
    try:
        return STEP_RULES[step]
    except KeyError:
        raise InvalidUsageError(f"No field rules for step '{step.name}'") from None
