"""
Condition Evaluator (``reimburse_engines.conditions``).

Responsibility
--------------
Evaluate a rule's non-limit boolean condition (amount, date or location
comparison) against one expense item.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O.

Invariants enforced
-------------------
* Amount operands compare as ``Decimal``; date operands as ``date``
  (ISO strings are parsed); location operands as ``str``.
* ``between`` is inclusive at both ends.
* ``in`` / ``not_in`` against a non-list value are both False.

Failure modes
-------------
* Unknown condition type or operator -> the condition PASSES and a
  ``condition_unknown_operator`` / ``condition_unknown_type`` warning is
  logged.  Fail-open is deliberate and tracked as an open question.
* A configured value that cannot be coerced (e.g. "abc" for an amount)
  is a configuration gap and also passes, with a warning.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.models import ExpenseItem, RuleCondition

logger = get_logger("engines.conditions")


class _Uncoercible(Exception):
    """Raised internally when a configured operand has the wrong shape."""


def _actual_value(condition_type: str, item: ExpenseItem) -> Any:
    match condition_type:
        case "amount":
            return item.amount_in_base_currency
        case "date":
            return item.expense_date
        case "location":
            return item.location
        case _:
            raise KeyError(condition_type)


def _coerce(condition_type: str, value: Any) -> Any:
    if value is None:
        return None
    try:
        match condition_type:
            case "amount":
                if isinstance(value, Decimal):
                    return value
                return Decimal(str(value))
            case "date":
                if isinstance(value, datetime):
                    return value.date()
                if isinstance(value, date):
                    return value
                return date.fromisoformat(str(value)[:10])
            case _:
                return str(value)
    except (InvalidOperation, ValueError) as exc:
        raise _Uncoercible(str(value)) from exc


def _apply_operator(operator: str, actual: Any, expected: Any, expected_end: Any) -> bool:
    match operator:
        case "eq":
            return actual == expected
        case "ne":
            return actual != expected
        case "gt" | "gte" | "lt" | "lte":
            if actual is None or expected is None:
                return False
            if operator == "gt":
                return actual > expected
            if operator == "gte":
                return actual >= expected
            if operator == "lt":
                return actual < expected
            return actual <= expected
        case "in":
            return isinstance(expected, tuple) and actual in expected
        case "not_in":
            return isinstance(expected, tuple) and actual not in expected
        case "between":
            if actual is None or expected is None or expected_end is None:
                return False
            return expected <= actual <= expected_end
    raise KeyError(operator)


def evaluate_condition(condition: RuleCondition, item: ExpenseItem) -> bool:
    """
    Return True when ``item`` satisfies ``condition``.

    Args:
        condition: The rule condition.
        item: The expense item.

    Returns:
        Whether the condition holds.  Unknown types/operators return True.
    """
    try:
        actual = _actual_value(condition.type, item)
    except KeyError:
        logger.warning("condition_unknown_type", extra={
            "condition_type": condition.type,
            "item_id": str(item.id),
        })
        return True

    try:
        if condition.operator in ("in", "not_in"):
            if isinstance(condition.value, (list, tuple)):
                expected = tuple(_coerce(condition.type, v) for v in condition.value)
            else:
                expected = None
        else:
            expected = _coerce(condition.type, condition.value)
        expected_end = _coerce(condition.type, condition.value_end)
    except _Uncoercible as exc:
        logger.warning("condition_value_uncoercible", extra={
            "condition_type": condition.type,
            "operator": condition.operator,
            "value": str(exc),
        })
        return True

    try:
        passed = _apply_operator(condition.operator, actual, expected, expected_end)
    except KeyError:
        logger.warning("condition_unknown_operator", extra={
            "operator": condition.operator,
            "condition_type": condition.type,
            "item_id": str(item.id),
        })
        return True

    logger.debug("condition_evaluated", extra={
        "condition_type": condition.type,
        "operator": condition.operator,
        "item_id": str(item.id),
        "passed": passed,
    })
    return passed
