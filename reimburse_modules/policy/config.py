"""
Expense Policy Engine Configuration Schema.

Defines the structure and defaults for compliance-engine settings: the
city-tier table that raises limits in expensive cities, the base currency
limits are expressed in, which reimbursement statuses the historical
ledger ignores, and the category catalogue used for coverage reports.
Actual values are loaded from tenant configuration at runtime.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Self

from reimburse_kernel.exceptions import CityTierError
from reimburse_kernel.logging_config import get_logger
from reimburse_modules.policy.models import ExpenseCategory, Severity

logger = get_logger("modules.policy.config")

TIER1_CITIES: tuple[str, ...] = (
    "北京", "上海", "广州", "深圳",
    "Beijing", "Shanghai", "Guangzhou", "Shenzhen",
)
TIER1_MULTIPLIER = Decimal("1.6")

VALID_LEDGER_STATUSES = {
    "draft", "pending", "under_review", "approved",
    "rejected", "processing", "paid", "cancelled",
}

DEFAULT_EXCLUDED_STATUSES: tuple[str, ...] = ("rejected", "draft")


@dataclass(frozen=True)
class CityTier:
    """A named group of cities sharing one limit multiplier."""
    name: str
    multiplier: Decimal
    cities: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise CityTierError(self.name, "tier name cannot be empty")
        if self.multiplier <= Decimal("0"):
            raise CityTierError(self.name, f"multiplier must be positive, got {self.multiplier}")

    def matches(self, location: str) -> bool:
        folded = location.casefold()
        return any(city.casefold() in folded for city in self.cities)


@dataclass(frozen=True)
class CityTierTable:
    """
    Ordered city tiers.  The first tier naming a city contained in the
    expense location supplies the multiplier.
    """
    tiers: tuple[CityTier, ...] = ()

    def multiplier_for(self, location: str | None) -> Decimal | None:
        """Multiplier for ``location``, or None when no tier lists it."""
        if not location:
            return None
        for tier in self.tiers:
            if tier.matches(location):
                return tier.multiplier
        return None

    @classmethod
    def default(cls) -> Self:
        """Tier-1 cities at 1.6x, everything else unchanged."""
        return cls(tiers=(CityTier("tier1", TIER1_MULTIPLIER, TIER1_CITIES),))

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Build from ``{"multipliers": {tier: factor}, "cities": {tier: [names]}}``.

        Raises:
            CityTierError: If a city list names a tier without a multiplier.
        """
        multipliers = data.get("multipliers") or {}
        cities = data.get("cities") or {}
        for tier_name in cities:
            if tier_name not in multipliers:
                raise CityTierError(str(tier_name), "cities listed for a tier with no multiplier")
        return cls(tiers=tuple(
            CityTier(
                name=str(tier_name),
                multiplier=Decimal(str(factor)),
                cities=tuple(str(c) for c in cities.get(tier_name, ())),
            )
            for tier_name, factor in multipliers.items()
        ))


@dataclass
class PolicyEngineConfig:
    """
    Configuration schema for the policy compliance engine.

    Override at instantiation with tenant-specific values:

        config = PolicyEngineConfig(
            base_currency="USD",
            city_tiers=CityTierTable.from_dict(tenant_settings["city_tiers"]),
        )
    """

    # Currency of ``amount_in_base_currency``; stored limits without a
    # currency are read in it
    base_currency: str = "CNY"
    city_tiers: CityTierTable = field(default_factory=CityTierTable.default)

    # Reimbursements in these statuses never count toward history
    excluded_ledger_statuses: tuple[str, ...] = DEFAULT_EXCLUDED_STATUSES

    # Applied to stored rules that carry no severity of their own
    default_severity: Severity = Severity.WARNING

    # Catalogue used by coverage reports
    known_categories: tuple[str, ...] = field(
        default_factory=lambda: tuple(c.value for c in ExpenseCategory)
    )

    def __post_init__(self):
        if not self.base_currency or len(self.base_currency) != 3:
            raise ValueError(
                f"base_currency must be a 3-letter currency code, got '{self.base_currency}'"
            )
        unknown = set(self.excluded_ledger_statuses) - VALID_LEDGER_STATUSES
        if unknown:
            raise ValueError(
                f"excluded_ledger_statuses must be drawn from {sorted(VALID_LEDGER_STATUSES)}, "
                f"got {sorted(unknown)}"
            )
        if not self.known_categories:
            raise ValueError("known_categories cannot be empty")
        if not isinstance(self.default_severity, Severity):
            self.default_severity = Severity(self.default_severity)

        logger.info(
            "policy_engine_config_initialized",
            extra={
                "base_currency": self.base_currency,
                "city_tier_count": len(self.city_tiers.tiers),
                "excluded_ledger_statuses": list(self.excluded_ledger_statuses),
                "default_severity": self.default_severity.value,
                "known_category_count": len(self.known_categories),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the product defaults."""
        logger.info("policy_engine_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g., tenant settings or YAML)."""
        logger.info(
            "policy_engine_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        data = dict(data)
        if "city_tiers" in data and isinstance(data["city_tiers"], dict):
            data["city_tiers"] = CityTierTable.from_dict(data["city_tiers"])
        for key in ("excluded_ledger_statuses", "known_categories"):
            if key in data:
                data[key] = tuple(data[key])
        return cls(**data)
