"""
SQLAlchemy ORM persistence models for the Expense Policy module.

Responsibility
--------------
Back the two read-only collaborators of the compliance engine: the
policy store (``policies`` table, rules as JSON in the stored wire shape)
and the historical reimbursement ledger (``reimbursements`` and
``reimbursement_items``).

Architecture position
---------------------
**Modules layer** -- ORM models consumed by the selectors.  Inherits from
``TrackedBase`` (kernel db layer).  Never imported by engines.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` (Numeric(38,9)) -- NEVER float.
* Status fields stored as String(50).
* ``ReimbursementItemModel`` belongs to exactly one ``ReimbursementModel``.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reimburse_kernel.db.base import TrackedBase


# ---------------------------------------------------------------------------
# PolicyModel
# ---------------------------------------------------------------------------


class PolicyModel(TrackedBase):
    """
    A tenant's expense policy.

    Maps to the ``Policy`` DTO in ``reimburse_modules.policy.models``.
    ``rules`` holds the list of stored rule dicts decoded by
    ``reimburse_modules.policy.codec``.
    """

    __tablename__ = "policies"

    __table_args__ = (
        Index("idx_policy_tenant_active", "tenant_id", "is_active"),
    )

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rules: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    completeness_check: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_via: Mapped[str] = mapped_column(String(20), nullable=False, default="ui")
    created_by_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self, default_severity=None, default_currency="CNY"):
        from reimburse_modules.policy.codec import rules_from_list
        from reimburse_modules.policy.models import Policy, Severity

        return Policy(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            priority=self.priority,
            is_active=self.is_active,
            rules=rules_from_list(
                self.rules, self.id, default_severity or Severity.WARNING,
                default_currency=default_currency,
            ),
            description=self.description,
            created_via=self.created_via,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID | None = None) -> "PolicyModel":
        from reimburse_modules.policy.codec import rule_to_dict

        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            name=dto.name,
            description=dto.description,
            is_active=dto.is_active,
            priority=dto.priority,
            rules=[rule_to_dict(r) for r in dto.ordered_rules],
            created_via=dto.created_via,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<PolicyModel {self.name} p={self.priority} active={self.is_active}>"


# ---------------------------------------------------------------------------
# ReimbursementModel
# ---------------------------------------------------------------------------


class ReimbursementModel(TrackedBase):
    """
    A submitted (or draft) reimbursement request.

    Only ``tenant_id``, ``user_id`` and ``status`` matter to the ledger;
    the rest is carried for the workflow that owns the row.
    """

    __tablename__ = "reimbursements"

    __table_args__ = (
        Index("idx_reimbursement_tenant_user", "tenant_id", "user_id"),
        Index("idx_reimbursement_status", "status"),
    )

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    user_id: Mapped[UUID] = mapped_column(nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    total_amount_in_base_currency: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    base_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CNY")
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")

    items: Mapped[list["ReimbursementItemModel"]] = relationship(
        "ReimbursementItemModel",
        back_populates="reimbursement",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self):
        """Items as ``ExpenseItem`` value objects, in insertion order."""
        return tuple(item.to_dto() for item in self.items)

    def __repr__(self) -> str:
        return f"<ReimbursementModel {self.title} [{self.status}] {self.total_amount_in_base_currency}>"


# ---------------------------------------------------------------------------
# ReimbursementItemModel
# ---------------------------------------------------------------------------


class ReimbursementItemModel(TrackedBase):
    """One expense line of a reimbursement."""

    __tablename__ = "reimbursement_items"

    __table_args__ = (
        Index("idx_reimbursement_item_parent", "reimbursement_id"),
        Index("idx_reimbursement_item_category_date", "category", "expense_date"),
    )

    reimbursement_id: Mapped[UUID] = mapped_column(
        ForeignKey("reimbursements.id"), nullable=False,
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal | None] = mapped_column(nullable=True)
    amount_in_base_currency: Mapped[Decimal] = mapped_column(nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    vendor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    receipt_id: Mapped[UUID | None]

    reimbursement: Mapped["ReimbursementModel"] = relationship(
        "ReimbursementModel", back_populates="items",
    )

    def to_dto(self):
        from reimburse_modules.policy.models import ExpenseItem

        return ExpenseItem(
            id=self.id,
            category=self.category,
            amount=self.amount,
            currency=self.currency,
            amount_in_base_currency=self.amount_in_base_currency,
            expense_date=self.expense_date,
            location=self.location,
            receipt_id=self.receipt_id,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<ReimbursementItemModel {self.category} {self.amount_in_base_currency} {self.expense_date}>"
