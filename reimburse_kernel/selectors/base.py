"""
Module: reimburse_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.  Module
    selectors (policy store, reimbursement ledger) build on it.
Architecture position: Kernel > Selectors.  May import from db/base.py.
    MUST NOT import from engines, modules, or config.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST
      NOT call session.add(), session.delete(), session.commit(), or
      session.flush().
    - DTO return convention: selectors return frozen dataclasses or computed
      results, NOT raw ORM model instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from reimburse_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs or computed results.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLAlchemy session owned by the caller.
        """
        self.session = session
