# tests/test_prompt_rules.py

from __future__ import annotations

import re

import pytest

from agent_dispatch.agents.prompt_rules import (
    SELECT_DOWN,
    ConfirmationRule,
    ResponseStep,
    confirmation_sequence,
    default_confirmation_rules,
    first_match,
)


def test_confirmation_sequence_offsets() -> None:
    steps = confirmation_sequence(0.3)
    assert [s.payload for s in steps] == ["\n", "y\n", SELECT_DOWN + "\n"]
    assert [s.offset for s in steps] == pytest.approx([0.0, 0.3, 0.6])


@pytest.mark.parametrize(
    "text",
    [
        "Claude needs your permission to use Write",
        "Do you want to create src/app.py?",
        "❯ Yes",
        "do you want to CREATE this file",
    ],
)
def test_permission_dialogs_match_permission_rule_first(text: str) -> None:
    rule = first_match(default_confirmation_rules(), text)
    assert rule is not None
    assert rule.name == "permission"


@pytest.mark.parametrize(
    "text",
    ["Proceed? [Y/n]", "Proceed? (y/N)", "Answer yes/no", "Please CONFIRM", "Continue?"],
)
def test_generic_prompts_match_yes_no_rule(text: str) -> None:
    rule = first_match(default_confirmation_rules(), text)
    assert rule is not None
    assert rule.name == "yes-no"


@pytest.mark.parametrize(
    "text",
    ["Reading files", "I will continue with the refactor", "yes, that works", ""],
)
def test_ordinary_output_matches_nothing(text: str) -> None:
    assert first_match(default_confirmation_rules(), text) is None


def test_both_rules_matching_returns_table_order() -> None:
    rule = first_match(default_confirmation_rules(), "Do you want to create [Y/n]")
    assert rule is not None and rule.name == "permission"


def test_only_permission_rule_is_rescanned() -> None:
    rules = default_confirmation_rules()
    assert first_match(rules, "Please confirm [Y/n]", rescan_only=True) is None
    rule = first_match(rules, "Claude needs your permission", rescan_only=True)
    assert rule is not None and rule.name == "permission"


def test_rescan_only_skips_rules_without_rescan() -> None:
    quiet = ConfirmationRule(
        name="chunk-only",
        pattern=re.compile("proceed", re.IGNORECASE),
        responses=(ResponseStep(0.0, "\n"),),
        rescan=False,
    )
    assert first_match([quiet], "Proceed") is quiet
    assert first_match([quiet], "Proceed", rescan_only=True) is None
