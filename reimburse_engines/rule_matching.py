"""
Rule Matcher (``reimburse_engines.rule_matching``).

Responsibility
--------------
Select the single applicable ``PolicyRule`` for an expense item from a
tenant's policies.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.

Invariants enforced
-------------------
* Policies are visited in ascending ``(priority, id)``; rules within a
  policy in ascending ``sequence``.  Input order never matters.
* First match wins.  Once a rule matches, no later rule (in the same or a
  lower-precedence policy) is looked at for that item.
* Inactive policies and rules with an empty category set never match.

Failure modes
-------------
* No exceptions.  ``None`` means "no rule applies".
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.models import (
    EvaluationContext,
    ExpenseItem,
    Policy,
    PolicyRule,
)

logger = get_logger("engines.rule_matching")


def order_policies(policies: Iterable[Policy]) -> tuple[Policy, ...]:
    """Active policies in evaluation order."""
    return tuple(sorted(
        (p for p in policies if p.is_active),
        key=lambda p: (p.priority, str(p.id)),
    ))


def rule_applies(
    rule: PolicyRule,
    category: str,
    context: EvaluationContext | None,
) -> bool:
    """True when the rule covers ``category`` and its scope fits the context."""
    if not rule.covers(category):
        return False
    if rule.department is not None:
        if context is None or context.department != rule.department:
            return False
    if rule.trip_type is not None:
        if context is None or context.trip_type != rule.trip_type:
            return False
    return True


def match_rule_for_category(
    category: str,
    context: EvaluationContext | None,
    policies: Sequence[Policy],
) -> PolicyRule | None:
    """First applicable rule for a bare category (no item needed)."""
    for policy in order_policies(policies):
        for rule in policy.ordered_rules:
            if rule_applies(rule, category, context):
                return rule
    return None


def match_rule(
    item: ExpenseItem,
    context: EvaluationContext | None,
    policies: Sequence[Policy],
) -> PolicyRule | None:
    """
    Return the first rule that applies to ``item``.

    Args:
        item: The expense item being checked.
        context: Submitter department / trip type; rules scoped to a
            department or trip type never match without one.
        policies: The tenant's policies, in any order.

    Returns:
        The matching rule, or None.
    """
    rule = match_rule_for_category(item.category, context, policies)
    if rule is None:
        logger.debug("rule_not_matched", extra={
            "item_id": str(item.id),
            "category": item.category,
        })
    return rule
