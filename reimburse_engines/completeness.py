"""
Policy Completeness Checker (``reimburse_engines.completeness``).

Responsibility
--------------
Report what an administrator still has to fill in: rules missing
required fields, and expense categories no rule covers.  Renders a plain
text reminder for the settings screen.

Architecture position
---------------------
**Engines layer** -- pure functional core.  The category catalogue is
passed in; nothing is read from configuration here.

Invariants enforced
-------------------
* A policy is complete iff every known category is covered and no rule
  is missing a required field.
* The reminder lists at most ten categories and summarizes the rest.
"""

from __future__ import annotations

from collections.abc import Iterable

from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.models import (
    IncompleteRule,
    Policy,
    PolicyCompletenessCheck,
    PolicyRule,
)

logger = get_logger("engines.completeness")

REMINDER_CATEGORY_LIMIT = 10
SUGGESTION_CATEGORY_LIMIT = 5

# (field, suggestion) in reporting order
REQUIRED_RULE_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "Give the rule a name, e.g. 'Hotel nightly cap'"),
    ("category", "Choose the expense category this rule applies to"),
    ("limit", "Set a limit amount and type, e.g. 500 CNY per item"),
    ("message", "Write the message shown when the rule is violated"),
)


def _missing(rule: PolicyRule, field_name: str) -> bool:
    match field_name:
        case "name":
            return not rule.name.strip()
        case "category":
            return not rule.category_set
        case "limit":
            return rule.limit is None
        case "message":
            return not rule.message.strip()
    return False


def check_rule_completeness(rule: PolicyRule) -> IncompleteRule | None:
    """
    Return the rule's missing required fields, or None if it is complete.

    The suggestion is the one for the first missing field.
    """
    missing = [
        (name, suggestion)
        for name, suggestion in REQUIRED_RULE_FIELDS
        if _missing(rule, name)
    ]
    if not missing:
        return None
    return IncompleteRule(
        rule_id=rule.id,
        rule_name=rule.name.strip() or "Unnamed rule",
        missing_fields=tuple(name for name, _ in missing),
        suggestion=missing[0][1],
    )


def check_policy_completeness(
    policy: Policy,
    known_categories: Iterable[str],
) -> PolicyCompletenessCheck:
    """
    Check category coverage and rule completeness for one policy.

    Args:
        policy: The policy to inspect.
        known_categories: Every category the product offers, in display
            order.

    Returns:
        PolicyCompletenessCheck.
    """
    covered: set[str] = set()
    incomplete: list[IncompleteRule] = []
    for rule in policy.ordered_rules:
        covered.update(rule.category_set)
        result = check_rule_completeness(rule)
        if result is not None:
            incomplete.append(result)

    missing_categories = tuple(c for c in known_categories if c not in covered)

    suggestions: list[str] = []
    if missing_categories:
        shown = ", ".join(missing_categories[:SUGGESTION_CATEGORY_LIMIT])
        more = " and more" if len(missing_categories) > SUGGESTION_CATEGORY_LIMIT else ""
        suggestions.append(f"No rules are set for these categories yet: {shown}{more}")
    if incomplete:
        suggestions.append(f"{len(incomplete)} rule(s) are incomplete and need more details")

    logger.info("policy_completeness_checked", extra={
        "policy_id": str(policy.id),
        "missing_category_count": len(missing_categories),
        "incomplete_rule_count": len(incomplete),
    })

    return PolicyCompletenessCheck(
        is_complete=not missing_categories and not incomplete,
        missing_categories=missing_categories,
        incomplete_rules=tuple(incomplete),
        suggestions=tuple(suggestions),
    )


def generate_completeness_reminder(check: PolicyCompletenessCheck) -> str:
    """Plain-text reminder for administrators."""
    if check.is_complete:
        return "Policy configuration is complete."

    lines = ["Policy configuration is incomplete. Please add the following:", ""]

    if check.incomplete_rules:
        lines.append("Rules with missing fields:")
        for rule in check.incomplete_rules:
            lines.append(f"- {rule.rule_name}: missing {', '.join(rule.missing_fields)}")
            lines.append(f"  Hint: {rule.suggestion}")
        lines.append("")

    if check.missing_categories:
        lines.append("Expense categories without rules:")
        lines.append(f"- {', '.join(check.missing_categories[:REMINDER_CATEGORY_LIMIT])}")
        extra = len(check.missing_categories) - REMINDER_CATEGORY_LIMIT
        if extra > 0:
            lines.append(f"- {extra} more categories have no rules")

    return "\n".join(lines)
