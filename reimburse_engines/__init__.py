"""
Pure compliance engines.

Every function here is deterministic over its arguments: no database, no
configuration files, no clock.  Ledger history reaches the engines only
through a caller-supplied lookup.

    rule_matching  - first-match rule selection across ordered policies
    conditions     - amount / date / location conditions
    limits         - per-item and cumulative limit evaluation
    accumulation   - shared allowances across a submitted batch
    compliance     - issue list for a whole reimbursement
    completeness   - administrator coverage report
"""

from reimburse_engines.accumulation import accumulator_key, evaluate_batch
from reimburse_engines.completeness import (
    check_policy_completeness,
    check_rule_completeness,
    generate_completeness_reminder,
)
from reimburse_engines.compliance import check_item, check_reimbursement, issue_id
from reimburse_engines.conditions import evaluate_condition
from reimburse_engines.limits import effective_limit_amount, evaluate_limit
from reimburse_engines.rule_matching import (
    match_rule,
    match_rule_for_category,
    order_policies,
)
from reimburse_engines.tracer import traced_engine

__all__ = [
    "accumulator_key",
    "check_item",
    "check_policy_completeness",
    "check_reimbursement",
    "check_rule_completeness",
    "effective_limit_amount",
    "evaluate_batch",
    "evaluate_condition",
    "evaluate_limit",
    "generate_completeness_reminder",
    "issue_id",
    "match_rule",
    "match_rule_for_category",
    "order_policies",
    "traced_engine",
]
