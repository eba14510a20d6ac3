"""
Batch Accumulator (``reimburse_engines.accumulation``).

Responsibility
--------------
Apply limits to a list of expense items submitted together, so that
items sharing a day, month or year window consume one shared allowance
instead of each seeing the full limit.

Architecture position
---------------------
**Engines layer** -- pure functional core.  The only outside call is the
caller-supplied ``history_lookup``, made at most once per accumulator key.

Invariants enforced
-------------------
* Items are processed in submission order; an earlier item consumes the
  allowance before a later one.
* For each key, ``history + sum(adjusted)`` never exceeds the effective
  limit unless history alone already did.
* Per-item limits never touch the accumulator.
* The accumulator advances by the ADJUSTED amount, never the original.

Failure modes
-------------
* Exceptions from ``history_lookup`` propagate unmodified.
* A cumulative rule with an empty category set is skipped (the item
  passes through unadjusted) and logged.

Concurrency
-----------
History is read, then decided on.  Two concurrent submissions can both
read the same history.  ``accumulator_key`` is public so callers can
serialize on ``(user, limit type, bucket)`` around the read and insert.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from reimburse_engines.limits import evaluate_limit
from reimburse_engines.rule_matching import match_rule, order_policies
from reimburse_engines.tracer import traced_engine
from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.config import CityTierTable
from reimburse_modules.policy.models import (
    AccumulatorKey,
    BatchItemResult,
    BatchLimitResult,
    EvaluationContext,
    ExpenseItem,
    HistoryLookup,
    Policy,
    PolicyRule,
    TimeBucket,
    proportional_amount,
)

logger = get_logger("engines.accumulation")


def accumulator_key(rule: PolicyRule, item: ExpenseItem) -> AccumulatorKey | None:
    """
    The accumulation identity for ``item`` under ``rule``.

    Returns None for rules without a cumulative limit or without
    categories.
    """
    limit = rule.limit
    if limit is None or not limit.is_cumulative:
        return None
    categories = rule.category_set
    if not categories:
        return None
    return AccumulatorKey(
        limit_type=limit.limit_type,
        categories=categories,
        bucket=TimeBucket.for_date(limit.limit_type, item.expense_date),
    )


def _pass_through(item: ExpenseItem) -> BatchItemResult:
    return BatchItemResult(
        item_id=item.id,
        category=item.category,
        original_amount=item.amount,
        original_amount_in_base_currency=item.amount_in_base_currency,
        adjusted_amount=item.amount,
        adjusted_amount_in_base_currency=item.amount_in_base_currency,
        was_adjusted=False,
    )


@traced_engine("accumulation", "1.0", fingerprint_fields=("items", "context"))
def evaluate_batch(
    items: Sequence[ExpenseItem],
    policies: Sequence[Policy],
    context: EvaluationContext,
    history_lookup: HistoryLookup,
    city_tiers: CityTierTable | None = None,
) -> BatchLimitResult:
    """
    Apply limits to every item, sharing allowances between items.

    Args:
        items: Items in submission order.
        policies: The tenant's policies, in any order.
        context: Submitting user and tenant.
        history_lookup: ``(user_id, tenant_id, bucket, categories) ->
            Decimal``; called once per distinct accumulator key.
        city_tiers: City multipliers; defaults to the tier-1 table.

    Returns:
        BatchLimitResult with one entry per item, in input order.
    """
    ordered = order_policies(policies)
    accumulated: dict[AccumulatorKey, Decimal] = {}
    results: list[BatchItemResult] = []
    messages: list[str] = []
    adjusted_count = 0
    adjusted_total = Decimal("0")

    for item in items:
        rule = match_rule(item, context, ordered)
        if rule is None or rule.limit is None:
            results.append(_pass_through(item))
            adjusted_total += item.amount_in_base_currency
            continue

        key = accumulator_key(rule, item)
        if rule.limit.is_cumulative and key is None:
            logger.warning("accumulation_rule_without_categories", extra={
                "rule_id": str(rule.id),
                "item_id": str(item.id),
            })
            results.append(_pass_through(item))
            adjusted_total += item.amount_in_base_currency
            continue

        historical = Decimal("0")
        if key is not None:
            if key not in accumulated:
                accumulated[key] = history_lookup(
                    context.user_id, context.tenant_id, key.bucket, key.categories,
                )
                logger.debug("accumulator_seeded", extra={
                    "limit_type": key.limit_type.value,
                    "bucket": key.bucket.label,
                    "categories": list(key.categories),
                    "historical_amount": str(accumulated[key]),
                })
            historical = accumulated[key]

        check = evaluate_limit(
            rule=rule,
            item=item,
            historical_amount=historical,
            city_tiers=city_tiers,
        )

        if key is not None:
            accumulated[key] = historical + check.adjusted_amount

        adjusted_original = proportional_amount(
            item.amount, item.amount_in_base_currency, check.adjusted_amount,
        )
        message = None
        if check.was_adjusted:
            adjusted_count += 1
            message = check.message
            messages.append(
                f"{item.category}: {item.amount_in_base_currency} -> {check.adjusted_amount}"
            )

        results.append(BatchItemResult(
            item_id=item.id,
            category=item.category,
            original_amount=item.amount,
            original_amount_in_base_currency=item.amount_in_base_currency,
            adjusted_amount=adjusted_original,
            adjusted_amount_in_base_currency=check.adjusted_amount,
            was_adjusted=check.was_adjusted,
            limit_check=check,
            message=message,
        ))
        adjusted_total += check.adjusted_amount

    logger.info("batch_limits_applied", extra={
        "item_count": len(results),
        "adjusted_count": adjusted_count,
        "accumulator_keys": len(accumulated),
        "adjusted_amount_total": str(adjusted_total),
    })

    return BatchLimitResult(
        items=tuple(results),
        total_adjusted=adjusted_count,
        adjusted_amount_total=adjusted_total,
        messages=tuple(messages),
    )
