"""Account-linking core: step rules, the pure state machine, and the session controller.

Typical usage::

    from acclink.linking import LinkingSessionController

    with LinkingSessionController(target, store.load(target.name), channel, store) as session:
        session.start_linking()
        channel.listen()
"""

from acclink.linking.session import LinkingSessionController
from acclink.linking.steps import STEP_RULES, StepFieldRules, rules_for

__all__ = [
    "LinkingSessionController",
    "STEP_RULES",
    "StepFieldRules",
    "rules_for",
]
