"""Tests for per-step field rules."""

from __future__ import annotations

import pytest

from acclink.exceptions import InvalidUsageError
from acclink.linking import STEP_RULES, rules_for
from acclink.linking.steps import required
from acclink.models import LinkingStep


class TestRequired:
    @pytest.mark.parametrize("value", [None, "", "   ", "\t\n"])
    def test_rejects_blank_values(self, value) -> None:
        assert required("Password")(value) == "Password is required."

    def test_accepts_non_blank(self) -> None:
        assert required("Password")("hunter2") is None


class TestStepRules:
    def test_every_prompting_step_has_rules(self) -> None:
        assert set(STEP_RULES) == {LinkingStep.USERNAME, LinkingStep.PASSWORD, LinkingStep.TOTP}

    @pytest.mark.parametrize(
        ("step", "field", "retry"),
        [
            (LinkingStep.USERNAME, "username", "Couldn't find your Google Account"),
            (LinkingStep.PASSWORD, "password", "Wrong password. Try again."),
            (LinkingStep.TOTP, "totp", "Wrong code. Try again."),
        ],
    )
    def test_field_and_retry_message(self, step, field, retry) -> None:
        rules = rules_for(step)
        assert rules.step is step
        assert rules.field == field
        assert rules.retry_message == retry

    def test_only_username_is_visible(self) -> None:
        assert rules_for(LinkingStep.USERNAME).secret is False
        assert rules_for(LinkingStep.PASSWORD).secret is True
        assert rules_for(LinkingStep.TOTP).secret is True

    def test_none_step_has_no_rules(self) -> None:
        with pytest.raises(InvalidUsageError, match="NONE"):
            rules_for(LinkingStep.NONE)
