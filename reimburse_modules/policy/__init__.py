"""
Expense Policy Module (``reimburse_modules.policy``).

Responsibility
--------------
Domain value objects for policies, rules, limits and expense items; the
engine configuration schema; persistence adapters for the policy store
and the historical reimbursement ledger; and the service facade the
reimbursement workflow calls.

Architecture position
---------------------
**Modules layer**.  ``models`` and ``config`` are the only parts the pure
engines may import.  ``orm``, ``selectors``, ``store`` and ``service`` are
imported explicitly by callers, never re-exported here, so that importing
the value objects never pulls in the engines or SQLAlchemy.

Failure modes
-------------
* ``TenantMismatchError`` when a policy source leaks another tenant's
  policy into an evaluation.
* ``ValueError`` from value-object construction (non-positive limit,
  unknown limit type).
"""

from reimburse_modules.policy.config import (
    CityTier,
    CityTierTable,
    PolicyEngineConfig,
)
from reimburse_modules.policy.models import (
    AccumulatorKey,
    BatchItemResult,
    BatchLimitResult,
    CategoryLimitInfo,
    ComplianceIssue,
    ComplianceResult,
    EvaluationContext,
    ExpenseCategory,
    ExpenseItem,
    IncompleteRule,
    IssueKind,
    LimitCheckResult,
    LimitType,
    PerDayLimit,
    PerItemLimit,
    PerMonthLimit,
    PerYearLimit,
    Policy,
    PolicyCompletenessCheck,
    PolicyRule,
    RuleCondition,
    RuleLimit,
    Severity,
    TimeBucket,
    make_limit,
)

__all__ = [
    "AccumulatorKey",
    "BatchItemResult",
    "BatchLimitResult",
    "CategoryLimitInfo",
    "CityTier",
    "CityTierTable",
    "ComplianceIssue",
    "ComplianceResult",
    "EvaluationContext",
    "ExpenseCategory",
    "ExpenseItem",
    "IncompleteRule",
    "IssueKind",
    "LimitCheckResult",
    "LimitType",
    "PerDayLimit",
    "PerItemLimit",
    "PerMonthLimit",
    "PerYearLimit",
    "Policy",
    "PolicyCompletenessCheck",
    "PolicyEngineConfig",
    "PolicyRule",
    "RuleCondition",
    "RuleLimit",
    "Severity",
    "TimeBucket",
    "make_limit",
]
