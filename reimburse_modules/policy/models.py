"""
Expense Policy Domain Models.

The nouns of policy compliance: policies, rules, limits, conditions, the
expense items they are applied to, and the results the engines hand back.
Every type here is a frozen dataclass; amounts are ``Decimal``.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID

from reimburse_kernel.db.types import round_money
from reimburse_kernel.logging_config import get_logger

logger = get_logger("modules.policy.models")


class ExpenseCategory(str, Enum):
    """Expense categories known to the reimbursement product."""
    # Travel
    FLIGHT = "flight"
    TRAIN = "train"
    HOTEL = "hotel"
    MEAL = "meal"
    TAXI = "taxi"
    CAR_RENTAL = "car_rental"
    FUEL = "fuel"
    PARKING = "parking"
    TOLL = "toll"
    # Office
    OFFICE_SUPPLIES = "office_supplies"
    EQUIPMENT = "equipment"
    SOFTWARE = "software"
    # Technology
    AI_TOKEN = "ai_token"
    CLOUD_RESOURCE = "cloud_resource"
    API_SERVICE = "api_service"
    HOSTING = "hosting"
    DOMAIN = "domain"
    # Administrative
    ADMIN_GENERAL = "admin_general"
    COURIER = "courier"
    PRINTING = "printing"
    PHONE = "phone"
    INTERNET = "internet"
    UTILITIES = "utilities"
    # Business
    CLIENT_ENTERTAINMENT = "client_entertainment"
    MARKETING = "marketing"
    TRAINING = "training"
    CONFERENCE = "conference"
    MEMBERSHIP = "membership"
    OTHER = "other"


class LimitType(str, Enum):
    """Limit granularities."""
    PER_ITEM = "per_item"
    PER_DAY = "per_day"
    PER_MONTH = "per_month"
    PER_YEAR = "per_year"


class Severity(str, Enum):
    """Compliance issue severity. Only ERROR blocks submission."""
    WARNING = "warning"
    ERROR = "error"


class IssueKind(str, Enum):
    """Which check produced a compliance issue."""
    LIMIT = "limit"
    CONDITION = "condition"
    RECEIPT = "receipt"
    AGGREGATE_LIMIT = "aggregate_limit"


CONDITION_TYPES = frozenset({"amount", "date", "location"})
CONDITION_OPERATORS = frozenset({
    "eq", "ne", "gt", "gte", "lt", "lte", "in", "not_in", "between",
})


# ---------------------------------------------------------------------------
# Limits (tagged variants)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _LimitBase:
    amount: Decimal
    currency: str = "CNY"
    cities: tuple[str, ...] = ()  # city override applies only when set

    limit_type: ClassVar[LimitType]

    def __post_init__(self) -> None:
        if self.amount <= Decimal("0"):
            raise ValueError(
                f"{self.limit_type.value} limit amount must be positive, "
                f"got {self.amount}"
            )

    @property
    def is_cumulative(self) -> bool:
        """True when the limit accumulates across items within a time window."""
        return self.limit_type is not LimitType.PER_ITEM


@dataclass(frozen=True)
class PerItemLimit(_LimitBase):
    """Maximum amount for a single expense item."""
    limit_type: ClassVar[LimitType] = LimitType.PER_ITEM


@dataclass(frozen=True)
class PerDayLimit(_LimitBase):
    """Maximum total per calendar day."""
    limit_type: ClassVar[LimitType] = LimitType.PER_DAY


@dataclass(frozen=True)
class PerMonthLimit(_LimitBase):
    """Maximum total per calendar month."""
    limit_type: ClassVar[LimitType] = LimitType.PER_MONTH


@dataclass(frozen=True)
class PerYearLimit(_LimitBase):
    """Maximum total per calendar year."""
    limit_type: ClassVar[LimitType] = LimitType.PER_YEAR


RuleLimit = PerItemLimit | PerDayLimit | PerMonthLimit | PerYearLimit

_LIMIT_CLASSES: dict[LimitType, type[_LimitBase]] = {
    LimitType.PER_ITEM: PerItemLimit,
    LimitType.PER_DAY: PerDayLimit,
    LimitType.PER_MONTH: PerMonthLimit,
    LimitType.PER_YEAR: PerYearLimit,
}


def make_limit(
    limit_type: LimitType | str,
    amount: Decimal,
    currency: str = "CNY",
    cities: tuple[str, ...] = (),
) -> RuleLimit:
    """
    Build the limit variant for a type string.

    Raises:
        ValueError: If ``limit_type`` is not a supported granularity or the
            amount is not positive.
    """
    lt = LimitType(limit_type)
    return _LIMIT_CLASSES[lt](amount=Decimal(amount), currency=currency, cities=tuple(cities))


# ---------------------------------------------------------------------------
# Policies and rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleCondition:
    """
    A boolean condition on an expense item.

    ``type`` and ``operator`` stay plain strings so that values written by
    newer tooling survive loading; unknown ones pass at evaluation time.
    """
    type: str
    operator: str
    value: Any
    value_end: Any = None


@dataclass(frozen=True)
class PolicyRule:
    """A single category-scoped constraint within a policy."""
    id: UUID
    policy_id: UUID
    name: str
    category: str | None = None
    categories: tuple[str, ...] = ()
    department: str | None = None
    trip_type: str | None = None
    limit: RuleLimit | None = None
    condition: RuleCondition | None = None
    requires_receipt: bool = False
    requires_approval: bool = False
    severity: Severity = Severity.WARNING
    message: str = ""
    suggestion: str = ""
    sequence: int = 0  # position within the policy, ascending

    @property
    def category_set(self) -> tuple[str, ...]:
        """Sorted categories this rule covers; empty means inapplicable."""
        if self.categories:
            return tuple(sorted(set(self.categories)))
        if self.category:
            return (self.category,)
        return ()

    def covers(self, category: str) -> bool:
        return category in self.category_set


@dataclass(frozen=True)
class Policy:
    """A named, prioritized collection of rules for one tenant."""
    id: UUID
    tenant_id: UUID
    name: str
    priority: int = 0  # lower value = evaluated first
    is_active: bool = True
    rules: tuple[PolicyRule, ...] = field(default_factory=tuple)
    description: str | None = None
    created_via: str = "ui"

    @property
    def ordered_rules(self) -> tuple[PolicyRule, ...]:
        return tuple(sorted(self.rules, key=lambda r: r.sequence))


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExpenseItem:
    """
    One expense line as submitted.

    ``amount_in_base_currency`` is already converted by the exchange-rate
    service; nothing downstream converts currency.
    A ``datetime`` passed as ``expense_date`` is reduced to its calendar date.
    """
    id: UUID
    category: str
    amount: Decimal
    currency: str
    amount_in_base_currency: Decimal
    expense_date: date
    location: str | None = None
    receipt_id: UUID | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.amount_in_base_currency < Decimal("0"):
            raise ValueError(
                f"amount_in_base_currency cannot be negative: "
                f"{self.amount_in_base_currency}"
            )
        if isinstance(self.expense_date, datetime):
            object.__setattr__(self, "expense_date", self.expense_date.date())


@dataclass(frozen=True)
class EvaluationContext:
    """Who is submitting, and under which department / trip type."""
    tenant_id: UUID
    user_id: UUID
    department: str | None = None
    trip_type: str | None = None


# ---------------------------------------------------------------------------
# Accumulation identity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeBucket:
    """
    The calendar window a cumulative limit is measured over.

    ``label`` is the ISO date (day), ``YYYY-MM`` (month) or ``YYYY`` (year);
    ``start`` and ``end`` are inclusive.
    """
    granularity: LimitType
    label: str
    start: date
    end: date

    @classmethod
    def for_date(cls, granularity: LimitType, on: date) -> TimeBucket:
        """
        Raises:
            ValueError: For ``PER_ITEM``, which has no time window.
        """
        if isinstance(on, datetime):
            on = on.date()
        match granularity:
            case LimitType.PER_DAY:
                return cls(granularity, on.isoformat(), on, on)
            case LimitType.PER_MONTH:
                last_day = calendar.monthrange(on.year, on.month)[1]
                return cls(
                    granularity,
                    f"{on.year:04d}-{on.month:02d}",
                    date(on.year, on.month, 1),
                    date(on.year, on.month, last_day),
                )
            case LimitType.PER_YEAR:
                return cls(
                    granularity,
                    f"{on.year:04d}",
                    date(on.year, 1, 1),
                    date(on.year, 12, 31),
                )
            case _:
                raise ValueError(f"{granularity} has no time bucket")

    def __str__(self) -> str:
        return self.label


@dataclass(frozen=True)
class AccumulatorKey:
    """Grouping identity that combines history and in-batch amounts."""
    limit_type: LimitType
    categories: tuple[str, ...]
    bucket: TimeBucket


# (user_id, tenant_id, bucket, categories) -> previously reimbursed total
HistoryLookup = Callable[[UUID, UUID, TimeBucket, tuple[str, ...]], Decimal]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LimitCheckResult:
    """Outcome of evaluating one item against one rule limit."""
    is_within_limit: bool
    limit_type: LimitType
    limit_amount: Decimal  # effective limit, after any city override
    limit_currency: str
    current_amount: Decimal
    existing_amount: Decimal
    total_amount: Decimal
    remaining_amount: Decimal  # before this item, floored at zero
    adjusted_amount: Decimal
    was_adjusted: bool
    rule_id: UUID
    rule_name: str
    message: str
    categories: tuple[str, ...]

    @property
    def over_amount(self) -> Decimal:
        return self.current_amount - self.adjusted_amount


@dataclass(frozen=True)
class ComplianceIssue:
    """An advisory finding attached to an item or a (date, category) group."""
    id: UUID
    rule_id: UUID
    rule_name: str
    severity: Severity
    kind: IssueKind
    message: str
    suggestion: str = ""
    item_id: UUID | None = None
    auto_resolvable: bool = False
    adjusted_amount: Decimal | None = None


@dataclass(frozen=True)
class ComplianceResult:
    """All findings for one reimbursement."""
    passed: bool
    issues: tuple[ComplianceIssue, ...] = ()
    requires_approval: bool = False

    @property
    def errors(self) -> tuple[ComplianceIssue, ...]:
        return tuple(i for i in self.issues if i.severity is Severity.ERROR)

    @property
    def warnings(self) -> tuple[ComplianceIssue, ...]:
        return tuple(i for i in self.issues if i.severity is Severity.WARNING)


@dataclass(frozen=True)
class BatchItemResult:
    """One item after batch limit application."""
    item_id: UUID
    category: str
    original_amount: Decimal
    original_amount_in_base_currency: Decimal
    adjusted_amount: Decimal  # original currency, scaled like the base amount
    adjusted_amount_in_base_currency: Decimal
    was_adjusted: bool
    limit_check: LimitCheckResult | None = None
    message: str | None = None


@dataclass(frozen=True)
class BatchLimitResult:
    """A whole batch after limit application, in submission order."""
    items: tuple[BatchItemResult, ...]
    total_adjusted: int  # number of items that were capped
    adjusted_amount_total: Decimal  # sum of adjusted base-currency amounts
    messages: tuple[str, ...] = ()


@dataclass(frozen=True)
class CategoryLimitInfo:
    """Limit summary for a category, for display next to an input field."""
    has_limit: bool
    limit_amount: Decimal | None = None
    limit_currency: str | None = None
    limit_type: LimitType | None = None
    rule_name: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class IncompleteRule:
    """A rule missing one or more required fields."""
    rule_id: UUID
    rule_name: str
    missing_fields: tuple[str, ...]
    suggestion: str


@dataclass(frozen=True)
class PolicyCompletenessCheck:
    """Coverage and completeness report for a policy."""
    is_complete: bool
    missing_categories: tuple[str, ...] = ()
    incomplete_rules: tuple[IncompleteRule, ...] = ()
    suggestions: tuple[str, ...] = ()


def proportional_amount(
    original: Decimal,
    original_base: Decimal,
    adjusted_base: Decimal,
) -> Decimal:
    """
    Scale an original-currency amount by the base-currency adjustment ratio.

    An item with a zero base amount is returned unchanged.
    """
    if original_base == Decimal("0") or adjusted_base == original_base:
        return original
    return round_money(original * adjusted_base / original_base)
