"""
Tests for the limit evaluator.

Covers:
- Per-item caps
- Day / month / year caps against history
- City-tier overrides
- Result invariants (property-based)
- ENGINE_TRACE emission
"""

from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from builders import make_item, make_rule
from reimburse_engines.limits import effective_limit_amount, evaluate_limit
from reimburse_modules.policy.config import CityTier, CityTierTable
from reimburse_modules.policy.models import LimitType, PerDayLimit

amounts = st.decimals(min_value=Decimal("0"), max_value=Decimal("100000"), places=2)
positive_limits = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2)


class TestPerItemLimit:

    def test_over_limit_is_capped(self):
        """Per-item taxi 100, item 135 -> adjusted 100, message cites 100."""
        rule = make_rule("taxi", "per_item", "100", name="Local transport cap")
        result = evaluate_limit(rule=rule, item=make_item("taxi", "135"))

        assert not result.is_within_limit
        assert result.was_adjusted
        assert result.adjusted_amount == Decimal("100")
        assert result.over_amount == Decimal("35")
        assert "100" in result.message
        assert "Local transport cap" in result.message

    def test_within_limit_unchanged(self):
        rule = make_rule("taxi", "per_item", "100")
        result = evaluate_limit(rule=rule, item=make_item("taxi", "80"))

        assert result.is_within_limit
        assert not result.was_adjusted
        assert result.adjusted_amount == Decimal("80")

    def test_exactly_at_limit_is_within(self):
        rule = make_rule("taxi", "per_item", "100")

        assert evaluate_limit(rule=rule, item=make_item("taxi", "100")).is_within_limit

    def test_history_ignored(self):
        rule = make_rule("taxi", "per_item", "100")
        result = evaluate_limit(
            rule=rule, item=make_item("taxi", "90"), historical_amount=Decimal("500"),
        )

        assert result.is_within_limit
        assert result.existing_amount == Decimal("0")
        assert result.remaining_amount == Decimal("100")

    @given(amount=amounts, limit=positive_limits)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_adjusted_is_min_of_amount_and_limit(self, amount, limit):
        rule = make_rule("taxi", "per_item", str(limit))
        result = evaluate_limit(rule=rule, item=make_item("taxi", amount))

        assert result.adjusted_amount == min(amount, limit)
        assert result.was_adjusted == (amount > limit)


class TestCumulativeLimits:

    def test_monthly_partial_remaining(self):
        """Monthly AI-token 5000, history 4800, item 300 -> adjusted 200."""
        rule = make_rule("ai_token", "per_month", "5000")
        result = evaluate_limit(
            rule=rule, item=make_item("ai_token", "300"), historical_amount=Decimal("4800"),
        )

        assert result.limit_type is LimitType.PER_MONTH
        assert result.adjusted_amount == Decimal("200")
        assert result.remaining_amount == Decimal("200")
        assert result.total_amount == Decimal("5100")
        assert result.existing_amount == Decimal("4800")
        assert result.was_adjusted

    def test_history_already_over_limit_adjusts_to_zero(self):
        rule = make_rule("meal", "per_day", "150")
        result = evaluate_limit(
            rule=rule, item=make_item("meal", "50"), historical_amount=Decimal("200"),
        )

        assert result.remaining_amount == Decimal("0")
        assert result.adjusted_amount == Decimal("0")

    def test_per_year(self):
        rule = make_rule("training", "per_year", "10000")
        result = evaluate_limit(
            rule=rule, item=make_item("training", "3000"), historical_amount=Decimal("8000"),
        )

        assert result.limit_type is LimitType.PER_YEAR
        assert result.adjusted_amount == Decimal("2000")

    def test_within_cumulative(self):
        rule = make_rule("meal", "per_day", "150")
        result = evaluate_limit(
            rule=rule, item=make_item("meal", "50"), historical_amount=Decimal("100"),
        )

        assert result.is_within_limit
        assert result.adjusted_amount == Decimal("50")

    @given(amount=amounts, limit=positive_limits, history=amounts)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_adjusted_bounds(self, amount, limit, history):
        rule = make_rule("meal", "per_month", str(limit))
        result = evaluate_limit(
            rule=rule, item=make_item("meal", amount), historical_amount=history,
        )

        assert Decimal("0") <= result.adjusted_amount
        assert result.adjusted_amount <= min(result.current_amount, result.remaining_amount)
        assert result.remaining_amount >= Decimal("0")
        if history <= limit:
            assert history + result.adjusted_amount <= limit

    @given(amount=amounts, limit=positive_limits, history=amounts)
    @settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_idempotent(self, amount, limit, history):
        rule = make_rule("meal", "per_day", str(limit))
        item = make_item("meal", amount)

        first = evaluate_limit(rule=rule, item=item, historical_amount=history)
        second = evaluate_limit(rule=rule, item=item, historical_amount=history)

        assert first == second


class TestCityOverride:

    def test_tier1_city_raises_limit(self):
        rule = make_rule("hotel", "per_day", "500", cities=("其他城市",))
        result = evaluate_limit(rule=rule, item=make_item("hotel", "700", location="上海市浦东新区"))

        assert result.limit_amount == Decimal("800.0")
        assert result.is_within_limit

    def test_english_city_name_matches(self):
        rule = make_rule("hotel", "per_day", "500", cities=("Beijing",))
        result = evaluate_limit(rule=rule, item=make_item("hotel", "900", location="Beijing, Chaoyang"))

        assert result.limit_amount == Decimal("800.0")
        assert result.adjusted_amount == Decimal("800.0")

    def test_limit_without_cities_never_scaled(self):
        rule = make_rule("hotel", "per_day", "500")
        result = evaluate_limit(rule=rule, item=make_item("hotel", "700", location="上海"))

        assert result.limit_amount == Decimal("500")
        assert result.adjusted_amount == Decimal("500")

    def test_unlisted_location_unchanged(self):
        rule = make_rule("hotel", "per_day", "500", cities=("其他城市",))

        assert evaluate_limit(rule=rule, item=make_item("hotel", "400", location="成都")).limit_amount == Decimal("500")

    def test_custom_table(self):
        table = CityTierTable(tiers=(CityTier("tier2", Decimal("1.2"), ("成都",)),))
        limit = PerDayLimit(Decimal("500"), cities=("any",))

        assert effective_limit_amount(limit, "成都", table) == Decimal("600.0")
        assert effective_limit_amount(limit, "上海", table) == Decimal("500")


class TestEvaluateLimitErrors:

    def test_rule_without_limit_raises(self):
        with pytest.raises(ValueError, match="no limit"):
            evaluate_limit(rule=make_rule("meal", None), item=make_item("meal"))


class TestLimitTracing:

    def test_emits_engine_trace(self, captured_logs):
        evaluate_limit(rule=make_rule("taxi"), item=make_item("taxi"))

        traces = [r for r in captured_logs() if r["message"] == "ENGINE_TRACE"]
        assert traces
        assert traces[0]["engine_name"] == "limits"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_logs_evaluation(self, captured_logs):
        evaluate_limit(rule=make_rule("taxi"), item=make_item("taxi", "150"))

        record = next(r for r in captured_logs() if r["message"] == "limit_evaluated")
        assert record["adjusted_amount"] == "100"
        assert record["was_adjusted"] is True
