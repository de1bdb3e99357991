# src/agent_dispatch/agents/prompt_rules.py

"""
Declarative prompt-detection rules.

The agent program has no structured framing: it asks yes/no and permission questions
as plain text. Each rule pairs a case-insensitive pattern with a fixed sequence of
blind responses, each sent at an offset from the moment the rule fired. Nothing here
touches a process, so the table can be tested with plain strings.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

LINE_END = "\n"
SELECT_DOWN = "\x1b[B"  # cursor-down escape, moves a TUI selection one item down


@dataclass(slots=True, frozen=True)
class ResponseStep:
    """Send `payload` `offset` seconds after the rule fired."""

    offset: float
    payload: str


@dataclass(slots=True, frozen=True)
class ConfirmationRule:
    name: str
    pattern: re.Pattern[str]
    responses: tuple[ResponseStep, ...]
    rescan: bool = True  # also checked by the periodic whole-buffer rescan

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def confirmation_sequence(step_delay: float = 0.3) -> tuple[ResponseStep, ...]:
    """
    Enter (accept the highlighted default), then `y` + Enter, then select-down + Enter.

    All three go out regardless of whether the earlier ones were accepted: there is
    no way to observe that from the output stream.
    """
    return (
        ResponseStep(0.0, LINE_END),
        ResponseStep(step_delay, "y" + LINE_END),
        ResponseStep(2 * step_delay, SELECT_DOWN + LINE_END),
    )


def default_confirmation_rules(step_delay: float = 0.3) -> tuple[ConfirmationRule, ...]:
    """
    Permission dialogs first, then generic yes/no phrasing.

    Only permission dialogs are rescanned: generic words like "confirm" stay in the
    output buffer after ordinary prose and would be answered again every interval.
    """
    sequence = confirmation_sequence(step_delay)
    return (
        ConfirmationRule(
            name="permission",
            pattern=re.compile(r"needs your permission|Do you want to create|❯ Yes", re.IGNORECASE),
            responses=sequence,
        ),
        ConfirmationRule(
            name="yes-no",
            pattern=re.compile(r"\[Y/n\]|\(Y/n\)|yes/no|confirm|continue\?", re.IGNORECASE),
            responses=sequence,
            rescan=False,
        ),
    )


def first_match(
    rules: Iterable[ConfirmationRule],
    text: str,
    *,
    rescan_only: bool = False,
) -> ConfirmationRule | None:
    """Return the first rule (in table order) whose pattern occurs in `text`."""
    for rule in rules:
        if rescan_only and not rule.rescan:
            continue
        if rule.matches(text):
            return rule
    return None
