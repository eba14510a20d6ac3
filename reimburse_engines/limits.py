"""
Limit Evaluator (``reimburse_engines.limits``).

Responsibility
--------------
Decide whether one expense item fits the limit of its matched rule and,
when it does not, compute the capped amount that does fit.

Architecture position
---------------------
**Engines layer** -- pure functional core.  The previously reimbursed
amount for the item's time window is always supplied by the caller; this
module never looks anything up.

Invariants enforced
-------------------
* ``0 <= adjusted_amount <= min(current_amount, remaining_amount)``.
* ``remaining_amount`` is floored at zero, even when history already
  exceeds the limit.
* Per-item limits ignore history: ``existing_amount`` is always zero and
  ``adjusted_amount <= limit_amount``.
* The city multiplier applies only to limits that name cities, and only
  when the item's location is listed in the city-tier table.

Failure modes
-------------
* A rule without a limit is a programming error at this level
  (``ValueError``); callers filter those out first.

Audit relevance
---------------
Every invocation emits ``ENGINE_TRACE`` and a ``limit_evaluated`` record
with the effective limit, so an adjusted reimbursement can be explained
after the fact.
"""

from __future__ import annotations

from decimal import Decimal

from reimburse_engines.tracer import traced_engine
from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.config import CityTierTable
from reimburse_modules.policy.models import (
    ExpenseItem,
    LimitCheckResult,
    LimitType,
    PerDayLimit,
    PerItemLimit,
    PerMonthLimit,
    PerYearLimit,
    PolicyRule,
    RuleLimit,
)

logger = get_logger("engines.limits")

ZERO = Decimal("0")

_WINDOW_LABELS = {
    LimitType.PER_DAY: "daily",
    LimitType.PER_MONTH: "monthly",
    LimitType.PER_YEAR: "yearly",
}


def effective_limit_amount(
    limit: RuleLimit,
    location: str | None,
    city_tiers: CityTierTable | None = None,
) -> Decimal:
    """
    The limit amount after the city-tier override.

    Limits with no ``cities`` are never scaled.
    """
    if not limit.cities:
        return limit.amount
    table = city_tiers if city_tiers is not None else CityTierTable.default()
    multiplier = table.multiplier_for(location)
    if multiplier is None:
        return limit.amount
    return limit.amount * multiplier


def _per_item(
    rule: PolicyRule,
    item: ExpenseItem,
    limit_amount: Decimal,
    currency: str,
) -> LimitCheckResult:
    amount = item.amount_in_base_currency
    within = amount <= limit_amount
    adjusted = amount if within else limit_amount
    if within:
        message = f"{rule.name}: {amount} {currency} is within the per-item limit of {limit_amount} {currency}"
    else:
        message = (
            f"{rule.name}: {amount} {currency} exceeds the per-item limit of "
            f"{limit_amount} {currency}; adjusted to {adjusted} {currency}"
        )
    return LimitCheckResult(
        is_within_limit=within,
        limit_type=LimitType.PER_ITEM,
        limit_amount=limit_amount,
        limit_currency=currency,
        current_amount=amount,
        existing_amount=ZERO,
        total_amount=amount,
        remaining_amount=limit_amount,
        adjusted_amount=adjusted,
        was_adjusted=not within,
        rule_id=rule.id,
        rule_name=rule.name,
        message=message,
        categories=rule.category_set,
    )


def _cumulative(
    rule: PolicyRule,
    item: ExpenseItem,
    limit_type: LimitType,
    limit_amount: Decimal,
    currency: str,
    historical_amount: Decimal,
) -> LimitCheckResult:
    amount = item.amount_in_base_currency
    total = historical_amount + amount
    remaining = max(ZERO, limit_amount - historical_amount)
    within = total <= limit_amount
    adjusted = amount if within else remaining
    window = _WINDOW_LABELS[limit_type]
    if within:
        message = (
            f"{rule.name}: {amount} {currency} fits the {window} limit of "
            f"{limit_amount} {currency} ({remaining - amount} {currency} left)"
        )
    else:
        message = (
            f"{rule.name}: {window} limit of {limit_amount} {currency} has "
            f"{remaining} {currency} remaining; {amount} {currency} adjusted to "
            f"{adjusted} {currency}"
        )
    return LimitCheckResult(
        is_within_limit=within,
        limit_type=limit_type,
        limit_amount=limit_amount,
        limit_currency=currency,
        current_amount=amount,
        existing_amount=historical_amount,
        total_amount=total,
        remaining_amount=remaining,
        adjusted_amount=adjusted,
        was_adjusted=not within,
        rule_id=rule.id,
        rule_name=rule.name,
        message=message,
        categories=rule.category_set,
    )


@traced_engine("limits", "1.0", fingerprint_fields=("rule", "item", "historical_amount"))
def evaluate_limit(
    rule: PolicyRule,
    item: ExpenseItem,
    historical_amount: Decimal = ZERO,
    city_tiers: CityTierTable | None = None,
) -> LimitCheckResult:
    """
    Evaluate ``item`` against ``rule.limit``.

    Args:
        rule: Matched rule; must carry a limit.
        item: The expense item (its base-currency amount is compared).
        historical_amount: Already-consumed amount in the item's time
            window.  Ignored for per-item limits.
        city_tiers: City multipliers; defaults to the tier-1 table.

    Returns:
        LimitCheckResult with the capped amount.

    Raises:
        ValueError: If the rule has no limit.
    """
    limit = rule.limit
    if limit is None:
        raise ValueError(f"Rule {rule.id} has no limit to evaluate")

    limit_amount = effective_limit_amount(limit, item.location, city_tiers)
    currency = limit.currency

    match limit:
        case PerItemLimit():
            result = _per_item(rule, item, limit_amount, currency)
        case PerDayLimit() | PerMonthLimit() | PerYearLimit():
            result = _cumulative(
                rule, item, limit.limit_type, limit_amount, currency,
                historical_amount,
            )
        case _:
            raise ValueError(f"Unsupported limit variant: {type(limit).__name__}")

    logger.info("limit_evaluated", extra={
        "rule_id": str(rule.id),
        "item_id": str(item.id),
        "limit_type": result.limit_type.value,
        "limit_amount": str(result.limit_amount),
        "current_amount": str(result.current_amount),
        "existing_amount": str(result.existing_amount),
        "adjusted_amount": str(result.adjusted_amount),
        "was_adjusted": result.was_adjusted,
    })
    return result
