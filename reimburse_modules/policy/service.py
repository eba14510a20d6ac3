"""
Expense Policy Compliance Service (``reimburse_modules.policy.service``).

Responsibility
--------------
The facade the reimbursement workflow calls: loads a tenant's active
policies, wires the historical ledger in as the engines' history lookup,
and delegates every decision to ``reimburse_engines``.

Architecture position
---------------------
**Modules layer** -- thin glue.  Composes a ``PolicySource``, a
``ReimbursementLedger`` and ``PolicyEngineConfig`` with the pure engines.
Writes nothing; the caller owns any transaction.

Invariants enforced
-------------------
* Exactly one tenant's policies are evaluated per call.  A source that
  returns another tenant's policy raises ``TenantMismatchError``.
* Policies are handed to the engines in ``(priority, id)`` order.
* Ledger history is read at most once per accumulator key per call, and
  always with the configured ``excluded_ledger_statuses``.

Failure modes
-------------
* ``TenantMismatchError`` -- policy source leaked a foreign policy.
* Ledger or source exceptions propagate unmodified.

Audit relevance
---------------
Every public method binds ``tenant_id`` / ``user_id`` into the log
context and logs start and outcome events.

Usage::

    service = PolicyComplianceService.for_session(session, config)
    result = service.check_reimbursement(items, context)
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from reimburse_engines.accumulation import evaluate_batch
from reimburse_engines.completeness import check_policy_completeness
from reimburse_engines.compliance import check_item, check_reimbursement
from reimburse_engines.rule_matching import order_policies
from reimburse_kernel.exceptions import TenantMismatchError
from reimburse_kernel.logging_config import LogContext, get_logger
from reimburse_modules.policy.config import PolicyEngineConfig
from reimburse_modules.policy.models import (
    BatchLimitResult,
    CategoryLimitInfo,
    ComplianceIssue,
    ComplianceResult,
    EvaluationContext,
    ExpenseItem,
    LimitType,
    Policy,
    PolicyCompletenessCheck,
    TimeBucket,
)
from reimburse_modules.policy.selectors import PolicySelector, ReimbursementLedgerSelector
from reimburse_modules.policy.store import PolicySource, ReimbursementLedger

logger = get_logger("modules.policy.service")


class PolicyComplianceService:
    """
    Orchestrates policy compliance for reimbursements.

    Engine composition:
    - rule_matching / limits / conditions via compliance.check_*
    - accumulation.evaluate_batch for submission-time limit application
    - completeness for administrator coverage reports
    """

    def __init__(
        self,
        policy_source: PolicySource,
        ledger: ReimbursementLedger,
        config: PolicyEngineConfig | None = None,
    ):
        self._policy_source = policy_source
        self._ledger = ledger
        self._config = config or PolicyEngineConfig.with_defaults()

    @classmethod
    def for_session(
        cls,
        session: Session,
        config: PolicyEngineConfig | None = None,
    ) -> PolicyComplianceService:
        """Service over the SQLAlchemy selectors, both built from ``config``."""
        config = config or PolicyEngineConfig.with_defaults()
        return cls(
            policy_source=PolicySelector.from_config(session, config),
            ledger=ReimbursementLedgerSelector.from_config(session, config),
            config=config,
        )

    @property
    def config(self) -> PolicyEngineConfig:
        return self._config

    def _reimbursed_amount(
        self,
        user_id: UUID,
        tenant_id: UUID,
        bucket: TimeBucket,
        categories: tuple[str, ...],
    ) -> Decimal:
        return self._ledger.get_reimbursed_amount(
            user_id, tenant_id, bucket, categories,
            excluded_statuses=self._config.excluded_ledger_statuses,
        )

    # =========================================================================
    # Policy loading
    # =========================================================================

    def active_policies(self, tenant_id: UUID) -> tuple[Policy, ...]:
        """
        The tenant's active policies in evaluation order.

        Raises:
            TenantMismatchError: If the source returned a policy owned by
                another tenant.
        """
        policies = self._policy_source.get_active_policies(tenant_id)
        for policy in policies:
            if policy.tenant_id != tenant_id:
                logger.error("policy_tenant_mismatch", extra={
                    "expected_tenant_id": str(tenant_id),
                    "policy_id": str(policy.id),
                    "actual_tenant_id": str(policy.tenant_id),
                })
                raise TenantMismatchError(
                    expected_tenant_id=str(tenant_id),
                    policy_id=str(policy.id),
                    actual_tenant_id=str(policy.tenant_id),
                )
        ordered = order_policies(policies)
        logger.debug("active_policies_loaded", extra={
            "tenant_id": str(tenant_id),
            "policy_count": len(ordered),
        })
        return ordered

    # =========================================================================
    # Compliance checks
    # =========================================================================

    def check_item(
        self,
        item: ExpenseItem,
        context: EvaluationContext,
    ) -> tuple[ComplianceIssue, ...]:
        """Real-time check of one item, with ledger history."""
        with LogContext.bind(tenant_id=context.tenant_id, user_id=context.user_id):
            logger.info("compliance_item_check_started", extra={
                "item_id": str(item.id),
                "category": item.category,
                "amount": str(item.amount_in_base_currency),
            })
            issues = check_item(
                item=item,
                context=context,
                policies=self.active_policies(context.tenant_id),
                history_lookup=self._reimbursed_amount,
                city_tiers=self._config.city_tiers,
            )
            logger.info("compliance_item_checked", extra={
                "item_id": str(item.id),
                "issue_count": len(issues),
            })
            return issues

    def check_reimbursement(
        self,
        items: Sequence[ExpenseItem],
        context: EvaluationContext,
        reimbursement_id: UUID | None = None,
    ) -> ComplianceResult:
        """Full compliance check of a reimbursement, with ledger history."""
        with LogContext.bind(
            tenant_id=context.tenant_id,
            user_id=context.user_id,
            reimbursement_id=reimbursement_id,
        ):
            logger.info("compliance_check_started", extra={
                "item_count": len(items),
            })
            result = check_reimbursement(
                items=items,
                context=context,
                policies=self.active_policies(context.tenant_id),
                history_lookup=self._reimbursed_amount,
                city_tiers=self._config.city_tiers,
            )
            logger.info("compliance_check_completed", extra={
                "passed": result.passed,
                "error_count": len(result.errors),
                "warning_count": len(result.warnings),
                "requires_approval": result.requires_approval,
            })
            return result

    def apply_limits(
        self,
        items: Sequence[ExpenseItem],
        context: EvaluationContext,
        reimbursement_id: UUID | None = None,
    ) -> BatchLimitResult:
        """Cap a batch of items at submission time."""
        with LogContext.bind(
            tenant_id=context.tenant_id,
            user_id=context.user_id,
            reimbursement_id=reimbursement_id,
        ):
            logger.info("limit_application_started", extra={
                "item_count": len(items),
            })
            result = evaluate_batch(
                items=items,
                policies=self.active_policies(context.tenant_id),
                context=context,
                history_lookup=self._reimbursed_amount,
                city_tiers=self._config.city_tiers,
            )
            logger.info("limit_application_completed", extra={
                "adjusted_count": result.total_adjusted,
                "adjusted_amount_total": str(result.adjusted_amount_total),
            })
            return result

    # =========================================================================
    # Display and administration
    # =========================================================================

    def category_limit_info(
        self,
        tenant_id: UUID,
        category: str,
        limit_type: LimitType | str = LimitType.PER_ITEM,
    ) -> CategoryLimitInfo:
        """
        The first limit of ``limit_type`` configured for ``category``.

        Department and trip-type scoping is ignored; this is a display hint.
        """
        wanted = LimitType(limit_type)
        with LogContext.bind(tenant_id=tenant_id):
            for policy in self.active_policies(tenant_id):
                for rule in policy.ordered_rules:
                    if rule.limit is None or rule.limit.limit_type is not wanted:
                        continue
                    if not rule.covers(category):
                        continue
                    return CategoryLimitInfo(
                        has_limit=True,
                        limit_amount=rule.limit.amount,
                        limit_currency=rule.limit.currency,
                        limit_type=wanted,
                        rule_name=rule.name,
                        message=rule.message or None,
                    )
            logger.debug("category_limit_not_found", extra={
                "category": category,
                "limit_type": wanted.value,
            })
            return CategoryLimitInfo(has_limit=False)

    def policy_completeness(self, tenant_id: UUID) -> dict[UUID, PolicyCompletenessCheck]:
        """Completeness report per active policy, keyed by policy id."""
        with LogContext.bind(tenant_id=tenant_id):
            reports = {
                policy.id: check_policy_completeness(policy, self._config.known_categories)
                for policy in self.active_policies(tenant_id)
            }
            logger.info("policy_completeness_reported", extra={
                "policy_count": len(reports),
                "complete_count": sum(1 for r in reports.values() if r.is_complete),
            })
            return reports
