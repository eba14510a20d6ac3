"""
Compliance Aggregator (``reimburse_engines.compliance``).

Responsibility
--------------
Run every policy check over the items of a reimbursement and assemble
the advisory issue list the approval workflow acts on.

Architecture position
---------------------
**Engines layer** -- pure functional core.  Composes the rule matcher,
limit evaluator and condition evaluator.  History, when wanted, arrives
through the caller-supplied lookup.

Invariants enforced
-------------------
* Per item, each failing check (limit, condition, receipt) yields its
  own issue, in that order.
* Issue ids are deterministic: the same input produces the same ids.
* ``passed`` is False iff at least one issue has severity ERROR.
* The (date, category) aggregate pass compares every group sum, single
  items included, against the matched rule's per-day limit.

Failure modes
-------------
* Items without a matching rule produce no issues.
* History lookup failures propagate unmodified.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import NAMESPACE_OID, UUID, uuid5

from reimburse_engines.accumulation import accumulator_key
from reimburse_engines.conditions import evaluate_condition
from reimburse_engines.limits import effective_limit_amount, evaluate_limit
from reimburse_engines.rule_matching import (
    match_rule,
    match_rule_for_category,
    order_policies,
)
from reimburse_engines.tracer import traced_engine
from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.config import CityTierTable
from reimburse_modules.policy.models import (
    ComplianceIssue,
    ComplianceResult,
    EvaluationContext,
    ExpenseItem,
    HistoryLookup,
    IssueKind,
    LimitType,
    Policy,
    PolicyRule,
    Severity,
)

logger = get_logger("engines.compliance")

_ISSUE_NAMESPACE = uuid5(NAMESPACE_OID, "reimburse.compliance_issue")

DEFAULT_SUGGESTION = "Check that this expense complies with the company reimbursement policy"


def issue_id(kind: IssueKind, rule_id: UUID, subject: str) -> UUID:
    """Deterministic issue id for (kind, rule, item id or group key)."""
    return uuid5(_ISSUE_NAMESPACE, f"{kind.value}:{rule_id}:{subject}")


def _historical_amount(
    rule: PolicyRule,
    item: ExpenseItem,
    context: EvaluationContext,
    history_lookup: HistoryLookup | None,
) -> Decimal:
    if history_lookup is None:
        return Decimal("0")
    key = accumulator_key(rule, item)
    if key is None:
        return Decimal("0")
    return history_lookup(context.user_id, context.tenant_id, key.bucket, key.categories)


def _evaluate_item(
    item: ExpenseItem,
    context: EvaluationContext,
    policies: Sequence[Policy],
    history_lookup: HistoryLookup | None,
    city_tiers: CityTierTable | None,
) -> tuple[PolicyRule | None, list[ComplianceIssue]]:
    rule = match_rule(item, context, policies)
    if rule is None:
        return None, []

    issues: list[ComplianceIssue] = []
    subject = str(item.id)

    if rule.limit is not None:
        check = evaluate_limit(
            rule=rule,
            item=item,
            historical_amount=_historical_amount(rule, item, context, history_lookup),
            city_tiers=city_tiers,
        )
        if not check.is_within_limit:
            issues.append(ComplianceIssue(
                id=issue_id(IssueKind.LIMIT, rule.id, subject),
                rule_id=rule.id,
                rule_name=rule.name,
                severity=rule.severity,
                kind=IssueKind.LIMIT,
                message=rule.message or check.message,
                suggestion=rule.suggestion or (
                    f"Over the limit by {check.over_amount} {check.limit_currency}; "
                    f"reduce the amount to {check.adjusted_amount} "
                    f"{check.limit_currency} or request a special approval"
                ),
                item_id=item.id,
                auto_resolvable=True,
                adjusted_amount=check.adjusted_amount,
            ))

    if rule.condition is not None and not evaluate_condition(rule.condition, item):
        cond = rule.condition
        issues.append(ComplianceIssue(
            id=issue_id(IssueKind.CONDITION, rule.id, subject),
            rule_id=rule.id,
            rule_name=rule.name,
            severity=rule.severity,
            kind=IssueKind.CONDITION,
            message=rule.message or (
                f"{rule.name}: {cond.type} condition '{cond.operator} {cond.value}' is not met"
            ),
            suggestion=rule.suggestion or DEFAULT_SUGGESTION,
            item_id=item.id,
        ))

    if rule.requires_receipt and item.receipt_id is None:
        issues.append(ComplianceIssue(
            id=issue_id(IssueKind.RECEIPT, rule.id, subject),
            rule_id=rule.id,
            rule_name=rule.name,
            severity=rule.severity,
            kind=IssueKind.RECEIPT,
            message=rule.message or f"A receipt is required for {item.category} expenses",
            suggestion=rule.suggestion or "Attach the receipt for this expense",
            item_id=item.id,
        ))

    return rule, issues


@traced_engine("compliance.item", "1.0", fingerprint_fields=("item", "context"))
def check_item(
    item: ExpenseItem,
    context: EvaluationContext,
    policies: Sequence[Policy],
    history_lookup: HistoryLookup | None = None,
    city_tiers: CityTierTable | None = None,
) -> tuple[ComplianceIssue, ...]:
    """
    Check one item in isolation (real-time feedback while editing).

    Args:
        item: The expense item.
        context: Submitter context.
        policies: The tenant's policies, in any order.
        history_lookup: Optional ledger lookup; without one, cumulative
            limits are checked against zero history.
        city_tiers: City multipliers; defaults to the tier-1 table.

    Returns:
        Issues for this item, possibly empty.
    """
    _, issues = _evaluate_item(item, context, order_policies(policies), history_lookup, city_tiers)
    return tuple(issues)


def _aggregate_issues(
    items: Sequence[ExpenseItem],
    context: EvaluationContext,
    policies: Sequence[Policy],
    city_tiers: CityTierTable | None,
) -> list[ComplianceIssue]:
    groups: dict[tuple[date, str], list[ExpenseItem]] = {}
    for item in items:
        groups.setdefault((item.expense_date, item.category), []).append(item)

    issues: list[ComplianceIssue] = []
    for (expense_date, category), group in groups.items():
        rule = match_rule_for_category(category, context, policies)
        if rule is None or rule.limit is None or rule.limit.limit_type is not LimitType.PER_DAY:
            continue
        total = sum((i.amount_in_base_currency for i in group), Decimal("0"))
        limit_amount = effective_limit_amount(rule.limit, group[0].location, city_tiers)
        if total <= limit_amount:
            continue
        group_key = f"{expense_date.isoformat()}/{category}"
        issues.append(ComplianceIssue(
            id=issue_id(IssueKind.AGGREGATE_LIMIT, rule.id, group_key),
            rule_id=rule.id,
            rule_name=rule.name,
            severity=rule.severity,
            kind=IssueKind.AGGREGATE_LIMIT,
            message=(
                f"{category} expenses on {expense_date.isoformat()} total {total} "
                f"{rule.limit.currency}, over the daily limit of {limit_amount} "
                f"{rule.limit.currency}"
            ),
            suggestion=rule.suggestion or DEFAULT_SUGGESTION,
        ))
        logger.info("aggregate_limit_exceeded", extra={
            "rule_id": str(rule.id),
            "expense_date": expense_date.isoformat(),
            "category": category,
            "total": str(total),
            "limit_amount": str(limit_amount),
        })
    return issues


@traced_engine("compliance", "1.0", fingerprint_fields=("items", "context"))
def check_reimbursement(
    items: Sequence[ExpenseItem],
    context: EvaluationContext,
    policies: Sequence[Policy],
    history_lookup: HistoryLookup | None = None,
    city_tiers: CityTierTable | None = None,
) -> ComplianceResult:
    """
    Check a whole reimbursement.

    Runs the per-item checks for every item, then the (date, category)
    aggregate pass.

    Returns:
        ComplianceResult; ``passed`` is False when any issue is an error.
    """
    ordered = order_policies(policies)
    issues: list[ComplianceIssue] = []
    requires_approval = False

    for item in items:
        rule, item_issues = _evaluate_item(item, context, ordered, history_lookup, city_tiers)
        if rule is not None and rule.requires_approval:
            requires_approval = True
        issues.extend(item_issues)

    issues.extend(_aggregate_issues(items, context, ordered, city_tiers))

    passed = not any(i.severity is Severity.ERROR for i in issues)
    logger.info("compliance_checked", extra={
        "item_count": len(items),
        "issue_count": len(issues),
        "passed": passed,
        "requires_approval": requires_approval,
    })
    return ComplianceResult(
        passed=passed,
        issues=tuple(issues),
        requires_approval=requires_approval,
    )
