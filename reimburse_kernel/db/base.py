"""
Module: reimburse_kernel.db.base
Responsibility: Declarative base classes for the ORM models that back the
    policy store and the reimbursement ledger.  Provides the UUID primary key
    convention, the type annotation map, and the TrackedBase audit mixin.
Architecture position: Kernel > DB.  Lowest-level import target for every
    ORM model.  MUST NOT import from engines, modules, or config.

Invariants enforced:
    - UUID primary keys stored as String(36), portable across PostgreSQL
      (production) and SQLite (tests).
    - Decimal maps to Numeric(38, 9).  Reimbursement amounts are NEVER float.
    - TrackedBase rows carry created_at / updated_at / created_by_id.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE and in WHERE clauses.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all reimbursement ORM models.

    Guarantees:
        - id is a uuid4-generated UUID stored as String(36).
        - Decimal columns default to Numeric(38, 9).
        - datetime columns are timezone-aware.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamp and actor tracking.

    created_by_id is nullable here: policies seeded from default templates
    or a policy-set file have no human author.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


# Re-export UUID for convenience
UUID = PyUUID
