"""
Tests for the stored policy wire format.

Covers camelCase decoding, lenient vs strict handling of malformed rules
and limits, derived ids, and encoding back to the stored shape.
"""

from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from builders import make_policy, make_rule
from reimburse_modules.policy.codec import (
    derived_policy_id,
    derived_rule_id,
    limit_from_dict,
    policy_from_dict,
    policy_to_dict,
    rule_from_dict,
    rules_from_list,
)
from reimburse_modules.policy.models import (
    LimitType,
    PerDayLimit,
    RuleCondition,
    Severity,
)

HOTEL_RULE = {
    "name": "Hotel cap",
    "category": "hotel",
    "tripType": "domestic",
    "limit": {
        "type": "per_day", "amount": 500, "currency": "CNY",
        "conditions": {"city": ["其他城市"]},
    },
    "condition": {"type": "amount", "operator": "between", "value": 1, "valueEnd": 900},
    "requiresReceipt": True,
    "requiresApproval": False,
    "severity": "error",
    "message": "Hotels are capped at 500 per night",
}


class TestRuleDecoding:

    def test_full_rule(self):
        policy_id = uuid4()

        rule = rule_from_dict(HOTEL_RULE, policy_id, 3)

        assert rule.policy_id == policy_id
        assert rule.id == derived_rule_id(policy_id, 3)
        assert rule.sequence == 3
        assert rule.trip_type == "domestic"
        assert rule.limit == PerDayLimit(Decimal("500"), "CNY", ("其他城市",))
        assert rule.condition == RuleCondition("amount", "between", 1, 900)
        assert rule.requires_receipt
        assert rule.severity is Severity.ERROR

    def test_explicit_id_and_sequence_kept(self):
        rule_id = uuid4()

        rule = rule_from_dict({**HOTEL_RULE, "id": str(rule_id), "sequence": 7}, uuid4(), 0)

        assert rule.id == rule_id
        assert rule.sequence == 7

    def test_default_severity_applied(self):
        data = {k: v for k, v in HOTEL_RULE.items() if k != "severity"}

        rule = rule_from_dict(data, uuid4(), 0, default_severity=Severity.ERROR)

        assert rule.severity is Severity.ERROR

    def test_default_currency_for_limit_without_one(self):
        data = {**HOTEL_RULE, "limit": {"type": "per_day", "amount": 80}}

        rule = rule_from_dict(data, uuid4(), 0, default_currency="USD")

        assert rule.limit.currency == "USD"
        assert limit_from_dict({"type": "per_item", "amount": 5}).currency == "CNY"

    def test_derived_ids_are_stable(self):
        policy_id = UUID("11111111-1111-1111-1111-111111111111")

        assert derived_rule_id(policy_id, 0) == derived_rule_id(policy_id, 0)
        assert derived_rule_id(policy_id, 0) != derived_rule_id(policy_id, 1)


class TestLenientDecoding:

    def test_unsupported_limit_type_dropped(self, captured_logs):
        data = {**HOTEL_RULE, "limit": {"type": "per_trip", "amount": 3000}}

        rule = rule_from_dict(data, uuid4(), 0)

        assert rule is not None
        assert rule.limit is None
        assert any(r["message"] == "policy_limit_dropped" for r in captured_logs())

    def test_bad_severity_skips_rule(self, captured_logs):
        rule = rule_from_dict({**HOTEL_RULE, "severity": "fatal"}, uuid4(), 0)

        assert rule is None
        assert any(r["message"] == "policy_rule_skipped" for r in captured_logs())

    def test_rules_from_list_skips_bad_entries(self):
        rules = rules_from_list(
            [HOTEL_RULE, "not a rule", {**HOTEL_RULE, "condition": {"type": "amount"}}],
            uuid4(),
        )

        assert len(rules) == 1

    def test_missing_amount_dropped(self):
        assert limit_from_dict({"type": "per_item"}) is None

    def test_empty_list(self):
        assert rules_from_list(None, uuid4()) == ()


class TestStrictDecoding:

    def test_unsupported_limit_raises(self):
        with pytest.raises(ValueError, match="Invalid"):
            rule_from_dict(
                {**HOTEL_RULE, "limit": {"type": "per_trip", "amount": 1}},
                uuid4(), 0, strict=True,
            )

    def test_non_positive_limit_raises(self):
        with pytest.raises(ValueError):
            limit_from_dict({"type": "per_item", "amount": 0}, strict=True)


class TestPolicyDecoding:

    def test_policy_document(self, tenant_id):
        policy = policy_from_dict(
            {"name": " Travel ", "priority": 1, "isActive": False, "rules": [HOTEL_RULE]},
            tenant_id,
        )

        assert policy.name == "Travel"
        assert policy.id == derived_policy_id(tenant_id, "Travel")
        assert policy.priority == 1
        assert not policy.is_active
        assert policy.created_via == "api"
        assert policy.rules[0].policy_id == policy.id

    def test_name_required(self, tenant_id):
        with pytest.raises(ValueError, match="name is required"):
            policy_from_dict({"rules": []}, tenant_id)

    def test_same_name_same_id_per_tenant(self, tenant_id):
        other_tenant = uuid4()

        assert derived_policy_id(tenant_id, "Travel") == derived_policy_id(tenant_id, "Travel")
        assert derived_policy_id(tenant_id, "Travel") != derived_policy_id(other_tenant, "Travel")


class TestEncoding:

    def test_policy_to_dict_is_decodable(self, tenant_id):
        rule = make_rule(
            "hotel", "per_day", "500", cities=("上海",),
            department="sales", requires_receipt=True, suggestion="Book early",
        )
        policy = make_policy(tenant_id, rule, priority=4)

        data = policy_to_dict(policy)
        decoded = policy_from_dict(data, tenant_id, strict=True)

        assert data["rules"][0]["limit"] == {
            "type": "per_day", "amount": "500", "currency": "CNY",
            "conditions": {"city": ["上海"]},
        }
        assert decoded.id == policy.id
        assert decoded.rules[0].limit.limit_type is LimitType.PER_DAY
        assert decoded.rules[0].department == "sales"
        assert decoded.rules[0].suggestion == "Book early"
