"""
Module: reimburse_modules.policy.selectors
Responsibility: SQLAlchemy implementations of the policy store and the
    historical reimbursement ledger.  Both are read-only.
Architecture position: Modules > Policy.  May import from the kernel
    selector base and this module's ORM.  MUST NOT be imported by engines.

Invariants enforced:
    - Selectors never add, flush or commit; the caller owns the session.
      Serializing the ledger read with the reimbursement insert is the
      caller's transaction to run.
    - Ledger sums exclude reimbursements whose status is in the configured
      exclusion set (default: rejected, draft); a caller may pass its own
      set per read.
    - Policies come back as frozen ``Policy`` DTOs; malformed stored rules
      are skipped by the codec.  Rules without a severity or limits without
      a currency take the selector's defaults.

Failure modes:
    - Database errors propagate unmodified.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from reimburse_kernel.logging_config import get_logger
from reimburse_kernel.selectors.base import BaseSelector
from reimburse_modules.policy.config import DEFAULT_EXCLUDED_STATUSES, PolicyEngineConfig
from reimburse_modules.policy.models import Policy, Severity, TimeBucket
from reimburse_modules.policy.orm import (
    PolicyModel,
    ReimbursementItemModel,
    ReimbursementModel,
)

logger = get_logger("modules.policy.selectors")


class PolicySelector(BaseSelector[PolicyModel]):
    """PolicySource over the ``policies`` table."""

    def __init__(
        self,
        session: Session,
        default_severity: Severity = Severity.WARNING,
        default_currency: str = "CNY",
    ):
        super().__init__(session)
        self.default_severity = default_severity
        self.default_currency = default_currency

    @classmethod
    def from_config(cls, session: Session, config: PolicyEngineConfig) -> PolicySelector:
        return cls(session, config.default_severity, config.base_currency)

    def get_active_policies(self, tenant_id: UUID) -> tuple[Policy, ...]:
        rows = self.session.scalars(
            select(PolicyModel)
            .where(PolicyModel.tenant_id == tenant_id)
            .where(PolicyModel.is_active.is_(True))
            .order_by(PolicyModel.priority, PolicyModel.id)
        ).all()
        return tuple(row.to_dto(self.default_severity, self.default_currency) for row in rows)

    def get_policy(self, policy_id: UUID) -> Policy | None:
        row = self.session.get(PolicyModel, policy_id)
        return row.to_dto(self.default_severity, self.default_currency) if row is not None else None


class ReimbursementLedgerSelector(BaseSelector[ReimbursementItemModel]):
    """ReimbursementLedger over ``reimbursements`` / ``reimbursement_items``."""

    def __init__(
        self,
        session: Session,
        excluded_statuses: Iterable[str] = DEFAULT_EXCLUDED_STATUSES,
    ):
        super().__init__(session)
        self.excluded_statuses = tuple(excluded_statuses)

    @classmethod
    def from_config(
        cls, session: Session, config: PolicyEngineConfig,
    ) -> ReimbursementLedgerSelector:
        return cls(session, config.excluded_ledger_statuses)

    def get_reimbursed_amount(
        self,
        user_id: UUID,
        tenant_id: UUID,
        bucket: TimeBucket,
        categories: tuple[str, ...],
        excluded_statuses: Iterable[str] | None = None,
    ) -> Decimal:
        if not categories:
            return Decimal("0")

        query = (
            select(func.sum(ReimbursementItemModel.amount_in_base_currency).label("total"))
            .select_from(ReimbursementItemModel)
            .join(ReimbursementModel, ReimbursementItemModel.reimbursement_id == ReimbursementModel.id)
            .where(ReimbursementModel.tenant_id == tenant_id)
            .where(ReimbursementModel.user_id == user_id)
            .where(ReimbursementItemModel.category.in_(categories))
            .where(ReimbursementItemModel.expense_date >= bucket.start)
            .where(ReimbursementItemModel.expense_date <= bucket.end)
        )
        excluded = self.excluded_statuses if excluded_statuses is None else tuple(excluded_statuses)
        if excluded:
            query = query.where(ReimbursementModel.status.not_in(excluded))

        total = self.session.execute(query).scalar()
        result = Decimal(str(total)) if total is not None else Decimal("0")

        logger.debug("ledger_amount_read", extra={
            "user_id": str(user_id),
            "bucket": bucket.label,
            "categories": list(categories),
            "total": str(result),
        })
        return result
