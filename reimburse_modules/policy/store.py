"""
Policy store and reimbursement ledger contracts.

Responsibility
--------------
Define the two read-only collaborators the compliance service depends on
as Protocols, and provide in-memory implementations for tests, tooling
and tenants whose policies come from a policy-set file.

The SQLAlchemy implementations live in ``reimburse_modules.policy.selectors``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID

from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.config import DEFAULT_EXCLUDED_STATUSES
from reimburse_modules.policy.models import ExpenseItem, Policy, TimeBucket

logger = get_logger("modules.policy.store")


@runtime_checkable
class PolicySource(Protocol):
    """Read-only access to a tenant's policies."""

    def get_active_policies(self, tenant_id: UUID) -> Sequence[Policy]:
        """Active policies of ``tenant_id``, in any order."""
        ...


@runtime_checkable
class ReimbursementLedger(Protocol):
    """Read-only access to previously reimbursed amounts."""

    def get_reimbursed_amount(
        self,
        user_id: UUID,
        tenant_id: UUID,
        bucket: TimeBucket,
        categories: tuple[str, ...],
        excluded_statuses: Iterable[str] | None = None,
    ) -> Decimal:
        """
        Sum of base-currency amounts already claimed by ``user_id`` in
        ``categories`` with an expense date inside ``bucket``.

        ``excluded_statuses`` overrides the ledger's own exclusion set
        for this read.
        """
        ...


class InMemoryPolicyStore:
    """PolicySource backed by a dict of tenant -> policies."""

    def __init__(self, policies: Iterable[Policy] = ()):
        self._policies: dict[UUID, list[Policy]] = {}
        for policy in policies:
            self.add(policy)

    def add(self, policy: Policy) -> None:
        self._policies.setdefault(policy.tenant_id, []).append(policy)

    def get_active_policies(self, tenant_id: UUID) -> tuple[Policy, ...]:
        return tuple(p for p in self._policies.get(tenant_id, ()) if p.is_active)


@dataclass(frozen=True)
class LedgerEntry:
    """One recorded expense line with the status of its reimbursement."""
    tenant_id: UUID
    user_id: UUID
    status: str
    item: ExpenseItem


class InMemoryLedger:
    """ReimbursementLedger over a list of recorded entries."""

    def __init__(self, excluded_statuses: Iterable[str] = DEFAULT_EXCLUDED_STATUSES):
        self.excluded_statuses = frozenset(excluded_statuses)
        self._entries: list[LedgerEntry] = []

    def record(
        self,
        tenant_id: UUID,
        user_id: UUID,
        item: ExpenseItem,
        status: str = "approved",
    ) -> None:
        self._entries.append(LedgerEntry(tenant_id, user_id, status, item))

    def get_reimbursed_amount(
        self,
        user_id: UUID,
        tenant_id: UUID,
        bucket: TimeBucket,
        categories: tuple[str, ...],
        excluded_statuses: Iterable[str] | None = None,
    ) -> Decimal:
        excluded = self.excluded_statuses if excluded_statuses is None else frozenset(excluded_statuses)
        total = sum(
            (
                e.item.amount_in_base_currency
                for e in self._entries
                if e.tenant_id == tenant_id
                and e.user_id == user_id
                and e.status not in excluded
                and e.item.category in categories
                and bucket.start <= e.item.expense_date <= bucket.end
            ),
            Decimal("0"),
        )
        logger.debug("ledger_amount_read", extra={
            "user_id": str(user_id),
            "bucket": bucket.label,
            "categories": list(categories),
            "total": str(total),
        })
        return total
