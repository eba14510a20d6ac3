"""Value-object builders shared by the test modules."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from reimburse_modules.policy.models import (
    ExpenseItem,
    Policy,
    PolicyRule,
    make_limit,
)


def make_item(
    category: str = "meal",
    amount: str | Decimal = "100",
    on: date = date(2025, 3, 14),
    location: str | None = None,
    receipt_id=None,
    currency: str = "CNY",
    base_amount: str | Decimal | None = None,
) -> ExpenseItem:
    """An expense item; the base amount defaults to the amount."""
    return ExpenseItem(
        id=uuid4(),
        category=category,
        amount=Decimal(str(amount)),
        currency=currency,
        amount_in_base_currency=Decimal(str(base_amount if base_amount is not None else amount)),
        expense_date=on,
        location=location,
        receipt_id=receipt_id,
    )


def make_rule(
    category: str | None = "meal",
    limit_type: str | None = "per_item",
    amount: str = "100",
    sequence: int = 0,
    cities: tuple[str, ...] = (),
    **kwargs,
) -> PolicyRule:
    """A rule with an optional limit; extra kwargs go to PolicyRule."""
    limit = make_limit(limit_type, Decimal(amount), cities=cities) if limit_type else None
    return PolicyRule(
        id=kwargs.pop("id", uuid4()),
        policy_id=kwargs.pop("policy_id", uuid4()),
        name=kwargs.pop("name", f"{category} {limit_type} {amount}"),
        category=category,
        limit=limit,
        sequence=sequence,
        **kwargs,
    )


def make_policy(tenant_id, *rules: PolicyRule, priority: int = 0, **kwargs) -> Policy:
    return Policy(
        id=kwargs.pop("id", uuid4()),
        tenant_id=tenant_id,
        name=kwargs.pop("name", f"policy p{priority}"),
        priority=priority,
        rules=rules,
        **kwargs,
    )
