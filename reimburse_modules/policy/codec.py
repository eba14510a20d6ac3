"""
Policy wire-format codec.

Converts between the stored JSON shape of policies and rules (camelCase
keys, as persisted in ``policies.rules`` and written in policy-set files)
and the frozen value objects in ``reimburse_modules.policy.models``.

Stored rule shape::

    {
        "id": "...", "name": "Hotel cap", "category": "hotel",
        "categories": ["hotel"], "department": null, "tripType": null,
        "limit": {"type": "per_item", "amount": 500, "currency": "CNY",
                  "conditions": {"city": ["Beijing"]}},
        "condition": {"type": "amount", "operator": "lte",
                      "value": 1000, "valueEnd": null},
        "requiresReceipt": true, "requiresApproval": false,
        "severity": "warning", "message": "...", "suggestion": "..."
    }

Decoding is lenient by default: a rule that cannot be decoded is skipped
and a limit of an unsupported type is dropped, both with a warning.
``strict=True`` raises ``ValueError`` instead, for policy-set loading.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import NAMESPACE_URL, UUID, uuid5

from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.models import (
    Policy,
    PolicyRule,
    RuleCondition,
    RuleLimit,
    Severity,
    make_limit,
)

logger = get_logger("modules.policy.codec")


def derived_rule_id(policy_id: UUID, sequence: int) -> UUID:
    """Stable id for a stored rule that has none."""
    return uuid5(NAMESPACE_URL, f"reimburse:policy:{policy_id}:rule:{sequence}")


def derived_policy_id(tenant_id: UUID, name: str) -> UUID:
    """Stable id for a policy-set entry that has none."""
    return uuid5(NAMESPACE_URL, f"reimburse:tenant:{tenant_id}:policy:{name}")


def _to_uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def limit_from_dict(
    data: dict,
    strict: bool = False,
    default_currency: str = "CNY",
) -> RuleLimit | None:
    """
    Decode a stored limit.  A limit without a currency is read in
    ``default_currency``.

    Raises:
        ValueError: In strict mode, for an unsupported type or bad amount.
    """
    try:
        amount = Decimal(str(data["amount"]))
        cities = tuple(str(c) for c in ((data.get("conditions") or {}).get("city") or ()))
        return make_limit(
            data["type"],
            amount,
            currency=str(data.get("currency") or default_currency),
            cities=cities,
        )
    except (KeyError, TypeError, InvalidOperation, ValueError) as exc:
        if strict:
            raise ValueError(f"Invalid limit {data!r}: {exc}") from exc
        logger.warning("policy_limit_dropped", extra={
            "limit_type": str(data.get("type")) if isinstance(data, dict) else None,
            "reason": str(exc),
        })
        return None


def limit_to_dict(limit: RuleLimit) -> dict:
    data: dict[str, Any] = {
        "type": limit.limit_type.value,
        "amount": str(limit.amount),
        "currency": limit.currency,
    }
    if limit.cities:
        data["conditions"] = {"city": list(limit.cities)}
    return data


def condition_from_dict(data: dict) -> RuleCondition:
    return RuleCondition(
        type=str(data["type"]),
        operator=str(data["operator"]),
        value=data.get("value"),
        value_end=data.get("valueEnd"),
    )


def rule_from_dict(
    data: dict,
    policy_id: UUID,
    sequence: int,
    default_severity: Severity = Severity.WARNING,
    strict: bool = False,
    default_currency: str = "CNY",
) -> PolicyRule | None:
    """
    Decode one stored rule.

    Args:
        data: The stored rule.
        policy_id: Owning policy.
        sequence: Position in the stored list; used unless the rule
            carries an explicit ``sequence``.
        default_severity: Severity for rules that have none.
        strict: Raise instead of skipping.
        default_currency: Currency for limits that have none.

    Returns:
        The rule, or None when it is malformed (lenient mode).

    Raises:
        ValueError: In strict mode, for a malformed rule.
    """
    try:
        limit = None
        if data.get("limit"):
            limit = limit_from_dict(data["limit"], strict=strict, default_currency=default_currency)
        condition = condition_from_dict(data["condition"]) if data.get("condition") else None
        severity = Severity(data["severity"]) if data.get("severity") else default_severity
        rule_id = _to_uuid(data["id"]) if data.get("id") else derived_rule_id(policy_id, sequence)
        return PolicyRule(
            id=rule_id,
            policy_id=policy_id,
            name=str(data.get("name") or ""),
            category=data.get("category") or None,
            categories=tuple(data.get("categories") or ()),
            department=data.get("department") or None,
            trip_type=data.get("tripType") or None,
            limit=limit,
            condition=condition,
            requires_receipt=bool(data.get("requiresReceipt", False)),
            requires_approval=bool(data.get("requiresApproval", False)),
            severity=severity,
            message=str(data.get("message") or ""),
            suggestion=str(data.get("suggestion") or ""),
            sequence=int(data.get("sequence", sequence)),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        if strict:
            raise ValueError(f"Invalid rule #{sequence} of policy {policy_id}: {exc}") from exc
        logger.warning("policy_rule_skipped", extra={
            "policy_id": str(policy_id),
            "sequence": sequence,
            "reason": str(exc),
        })
        return None


def rule_to_dict(rule: PolicyRule) -> dict:
    data: dict[str, Any] = {
        "id": str(rule.id),
        "name": rule.name,
        "requiresReceipt": rule.requires_receipt,
        "requiresApproval": rule.requires_approval,
        "severity": rule.severity.value,
        "message": rule.message,
        "sequence": rule.sequence,
    }
    if rule.category:
        data["category"] = rule.category
    if rule.categories:
        data["categories"] = list(rule.categories)
    if rule.department:
        data["department"] = rule.department
    if rule.trip_type:
        data["tripType"] = rule.trip_type
    if rule.limit is not None:
        data["limit"] = limit_to_dict(rule.limit)
    if rule.condition is not None:
        data["condition"] = {
            "type": rule.condition.type,
            "operator": rule.condition.operator,
            "value": rule.condition.value,
            "valueEnd": rule.condition.value_end,
        }
    if rule.suggestion:
        data["suggestion"] = rule.suggestion
    return data


def rules_from_list(
    rules: list[dict] | None,
    policy_id: UUID,
    default_severity: Severity = Severity.WARNING,
    strict: bool = False,
    default_currency: str = "CNY",
) -> tuple[PolicyRule, ...]:
    decoded = (
        rule_from_dict(r, policy_id, i, default_severity, strict, default_currency)
        for i, r in enumerate(rules or ())
    )
    return tuple(r for r in decoded if r is not None)


def policy_from_dict(
    data: dict,
    tenant_id: UUID,
    default_severity: Severity = Severity.WARNING,
    strict: bool = False,
    default_currency: str = "CNY",
) -> Policy:
    """
    Decode a policy document (policy-set file entry or API payload).

    Raises:
        ValueError: If the policy has no name, or (strict) a rule is bad.
    """
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValueError("Policy name is required")
    policy_id = _to_uuid(data["id"]) if data.get("id") else derived_policy_id(tenant_id, name)
    return Policy(
        id=policy_id,
        tenant_id=tenant_id,
        name=name,
        priority=int(data.get("priority", 0)),
        is_active=bool(data.get("isActive", True)),
        rules=rules_from_list(
            data.get("rules"), policy_id, default_severity, strict, default_currency,
        ),
        description=data.get("description"),
        created_via=str(data.get("createdVia", "api")),
    )


def policy_to_dict(policy: Policy) -> dict:
    return {
        "id": str(policy.id),
        "name": policy.name,
        "description": policy.description,
        "priority": policy.priority,
        "isActive": policy.is_active,
        "createdVia": policy.created_via,
        "rules": [rule_to_dict(r) for r in policy.ordered_rules],
    }


__all__ = [
    "condition_from_dict",
    "derived_policy_id",
    "derived_rule_id",
    "limit_from_dict",
    "limit_to_dict",
    "policy_from_dict",
    "policy_to_dict",
    "rule_from_dict",
    "rule_to_dict",
    "rules_from_list",
]
