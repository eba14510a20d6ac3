"""
Tests for the rule matcher.

Covers:
- Priority ordering across policies, id tie-break
- Sequence ordering within a policy
- Inactive policies
- Category sets, department and trip-type scoping
"""

from uuid import UUID

from builders import make_item, make_policy, make_rule
from reimburse_engines.rule_matching import (
    match_rule,
    match_rule_for_category,
    order_policies,
    rule_applies,
)
from reimburse_modules.policy.models import EvaluationContext


class TestPolicyOrdering:
    """Policies are visited by (priority, id), never by input order."""

    def test_lower_priority_value_wins(self, tenant_id, context):
        """Priority-1 hotel rule wins over priority-2."""
        p1_rule = make_rule("hotel", "per_day", "500", name="p1 hotel")
        p2_rule = make_rule("hotel", "per_day", "900", name="p2 hotel")
        p2 = make_policy(tenant_id, p2_rule, priority=2)
        p1 = make_policy(tenant_id, p1_rule, priority=1)

        rule = match_rule(make_item("hotel", "600"), context, [p2, p1])

        assert rule == p1_rule

    def test_tie_broken_by_id(self, tenant_id, context):
        low = make_policy(
            tenant_id, make_rule("meal", name="low id"),
            id=UUID("00000000-0000-0000-0000-000000000001"),
        )
        high = make_policy(
            tenant_id, make_rule("meal", name="high id"),
            id=UUID("ffffffff-0000-0000-0000-000000000001"),
        )

        assert match_rule(make_item("meal"), context, [high, low]).name == "low id"
        assert match_rule(make_item("meal"), context, [low, high]).name == "low id"

    def test_inactive_policies_skipped(self, tenant_id, context):
        inactive = make_policy(tenant_id, make_rule("meal", name="inactive"), priority=0, is_active=False)
        active = make_policy(tenant_id, make_rule("meal", name="active"), priority=5)

        assert match_rule(make_item("meal"), context, [inactive, active]).name == "active"

    def test_order_policies_drops_inactive(self, tenant_id):
        inactive = make_policy(tenant_id, is_active=False)
        active = make_policy(tenant_id)

        assert order_policies([inactive, active]) == (active,)


class TestRuleOrdering:
    """First match wins within a policy, by sequence."""

    def test_sequence_not_tuple_position(self, tenant_id, context):
        second = make_rule("taxi", "per_day", "200", sequence=1, name="daily")
        first = make_rule("taxi", "per_item", "100", sequence=0, name="single")
        policy = make_policy(tenant_id, second, first)

        assert match_rule(make_item("taxi"), context, [policy]).name == "single"

    def test_no_match_returns_none(self, tenant_id, context):
        policy = make_policy(tenant_id, make_rule("meal"))

        assert match_rule(make_item("flight"), context, [policy]) is None

    def test_no_policies(self, context):
        assert match_rule(make_item("meal"), context, []) is None


class TestRuleApplies:
    """Category sets and scoping."""

    def test_categories_take_precedence_over_category(self, context):
        rule = make_rule("meal", categories=("taxi", "train"))

        assert rule_applies(rule, "taxi", context)
        assert not rule_applies(rule, "meal", context)

    def test_empty_category_set_never_matches(self, context):
        rule = make_rule(None)

        assert not rule_applies(rule, "meal", context)

    def test_department_scope(self, tenant_id, user_id):
        rule = make_rule("meal", department="sales")
        sales = EvaluationContext(tenant_id, user_id, department="sales")
        rnd = EvaluationContext(tenant_id, user_id, department="rnd")

        assert rule_applies(rule, "meal", sales)
        assert not rule_applies(rule, "meal", rnd)
        assert not rule_applies(rule, "meal", None)

    def test_trip_type_scope(self, tenant_id, user_id):
        rule = make_rule("flight", trip_type="international")
        intl = EvaluationContext(tenant_id, user_id, trip_type="international")
        domestic = EvaluationContext(tenant_id, user_id, trip_type="domestic")

        assert rule_applies(rule, "flight", intl)
        assert not rule_applies(rule, "flight", domestic)

    def test_scoped_rule_falls_through_to_general(self, tenant_id, context):
        scoped = make_rule("meal", "per_item", "300", sequence=0, department="sales", name="sales")
        general = make_rule("meal", "per_item", "100", sequence=1, name="general")
        policy = make_policy(tenant_id, scoped, general)

        assert match_rule(make_item("meal"), context, [policy]).name == "general"

    def test_match_rule_for_category(self, tenant_id, context):
        rule = make_rule("ai_token", "per_month", "5000")
        policy = make_policy(tenant_id, rule)

        assert match_rule_for_category("ai_token", context, [policy]) == rule
        assert match_rule_for_category("meal", context, [policy]) is None
