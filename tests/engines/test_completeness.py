"""Tests for the policy completeness checker and reminder text."""

from uuid import uuid4

from builders import make_policy, make_rule
from reimburse_engines.completeness import (
    check_policy_completeness,
    check_rule_completeness,
    generate_completeness_reminder,
)
from reimburse_modules.policy.models import (
    ExpenseCategory,
    IncompleteRule,
    PolicyCompletenessCheck,
)

ALL_CATEGORIES = tuple(c.value for c in ExpenseCategory)


class TestRuleCompleteness:

    def test_complete_rule(self):
        rule = make_rule("meal", "per_day", "150", message="Meals are capped at 150 a day")

        assert check_rule_completeness(rule) is None

    def test_missing_fields_in_reporting_order(self):
        rule = make_rule(None, None, name="  ")

        result = check_rule_completeness(rule)

        assert result.missing_fields == ("name", "category", "limit", "message")
        assert result.rule_name == "Unnamed rule"
        assert "name" in result.suggestion

    def test_suggestion_for_first_missing_field(self):
        rule = make_rule("meal", None, message="capped")

        result = check_rule_completeness(rule)

        assert result.missing_fields == ("limit",)
        assert "limit" in result.suggestion

    def test_categories_satisfy_category(self):
        rule = make_rule(None, "per_day", "200", categories=("taxi",), message="m")

        assert check_rule_completeness(rule) is None


class TestPolicyCompleteness:

    def test_uncovered_categories_listed_in_catalogue_order(self, tenant_id):
        policy = make_policy(tenant_id, make_rule("meal", message="m"))

        check = check_policy_completeness(policy, ["hotel", "meal", "taxi"])

        assert not check.is_complete
        assert check.missing_categories == ("hotel", "taxi")
        assert check.incomplete_rules == ()
        assert "hotel, taxi" in check.suggestions[0]

    def test_complete_policy(self, tenant_id):
        policy = make_policy(
            tenant_id,
            make_rule("meal", message="m"),
            make_rule(None, categories=("hotel", "taxi"), message="m"),
        )

        check = check_policy_completeness(policy, ["hotel", "meal", "taxi"])

        assert check.is_complete
        assert check.suggestions == ()

    def test_incomplete_rule_makes_policy_incomplete(self, tenant_id):
        policy = make_policy(tenant_id, make_rule("meal"))

        check = check_policy_completeness(policy, ["meal"])

        assert not check.is_complete
        assert check.incomplete_rules[0].missing_fields == ("message",)
        assert check.suggestions == ("1 rule(s) are incomplete and need more details",)

    def test_suggestion_truncates_long_category_list(self, tenant_id):
        check = check_policy_completeness(make_policy(tenant_id), ALL_CATEGORIES)

        assert check.suggestions[0].endswith(" and more")
        assert len(check.missing_categories) == len(ALL_CATEGORIES)

    def test_logs_counts(self, tenant_id, captured_logs):
        check_policy_completeness(make_policy(tenant_id), ["meal", "taxi"])

        record = next(r for r in captured_logs() if r["message"] == "policy_completeness_checked")
        assert record["missing_category_count"] == 2


class TestReminder:

    def test_complete_message(self):
        assert generate_completeness_reminder(PolicyCompletenessCheck(is_complete=True)) == (
            "Policy configuration is complete."
        )

    def test_lists_rules_and_categories(self):
        check = PolicyCompletenessCheck(
            is_complete=False,
            missing_categories=("hotel",),
            incomplete_rules=(
                IncompleteRule(uuid4(), "Meal cap", ("message",), "Write the message"),
            ),
        )

        text = generate_completeness_reminder(check)

        assert "- Meal cap: missing message" in text
        assert "  Hint: Write the message" in text
        assert "- hotel" in text

    def test_caps_categories_at_ten(self):
        check = PolicyCompletenessCheck(is_complete=False, missing_categories=ALL_CATEGORIES)

        text = generate_completeness_reminder(check)

        assert ", ".join(ALL_CATEGORIES[:10]) in text
        assert ALL_CATEGORIES[10] not in text.split("\n")[-2]
        assert f"- {len(ALL_CATEGORIES) - 10} more categories have no rules" in text
