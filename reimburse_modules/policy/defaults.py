"""
Default policy templates.

Three starter policies a new tenant gets before an administrator writes
its own: travel (priority 1), technology (priority 2) and business
(priority 3).  Templates are stored-shape documents decoded through the
codec, so ids are derived deterministically from the tenant and the
policy name.  ``DEFAULT_POLICY_SET`` wraps the same templates as a
policy-set document; ``reimburse_config`` serves it as the ``default`` set.
"""

from __future__ import annotations

from uuid import UUID

from reimburse_modules.policy.codec import policy_from_dict
from reimburse_modules.policy.config import TIER1_CITIES, TIER1_MULTIPLIER
from reimburse_modules.policy.models import Policy

TIER1_CITY_NAMES = ["北京", "上海", "广州", "深圳"]

TRAVEL_POLICY: dict = {
    "name": "Travel expense policy",
    "description": "Expenses incurred by employees on business trips",
    "priority": 1,
    "createdVia": "ui",
    "rules": [
        {
            "name": "Domestic flight cap",
            "category": "flight",
            "limit": {"type": "per_item", "amount": 2000, "currency": "CNY"},
            "requiresReceipt": True,
            "message": "A domestic flight may not exceed 2000 CNY (economy class)",
            "suggestion": "Request a special approval in advance for business class",
        },
        {
            "name": "International flight cap",
            "category": "flight",
            "condition": {"type": "location", "operator": "not_in", "value": ["中国", "China", "国内"]},
            "limit": {"type": "per_item", "amount": 8000, "currency": "CNY"},
            "requiresReceipt": True,
            "requiresApproval": True,
            "message": "International flights need prior approval",
        },
        {
            "name": "Hotel cap - other cities",
            "category": "hotel",
            "limit": {
                "type": "per_day", "amount": 500, "currency": "CNY",
                "conditions": {"city": ["其他城市"]},
            },
            "requiresReceipt": True,
            "message": "Hotels in other cities may not exceed 500 CNY per night",
        },
        {
            "name": "Hotel cap - tier-1 cities",
            "category": "hotel",
            "limit": {
                "type": "per_day", "amount": 800, "currency": "CNY",
                "conditions": {"city": TIER1_CITY_NAMES},
            },
            "requiresReceipt": True,
            "message": "Hotels in tier-1 cities may not exceed 800 CNY per night",
        },
        {
            "name": "Meal cap",
            "category": "meal",
            "limit": {"type": "per_day", "amount": 150, "currency": "CNY"},
            "requiresReceipt": True,
            "message": "Meals on a business trip may not exceed 150 CNY per person per day",
            "suggestion": "Use the client entertainment category for client meals",
        },
        {
            "name": "Local transport cap",
            "category": "taxi",
            "limit": {"type": "per_item", "amount": 100, "currency": "CNY"},
            "requiresReceipt": True,
            "message": "A single local trip may not exceed 100 CNY",
            "suggestion": "Late-night overtime or heavy luggage can be claimed as an exception",
        },
        {
            "name": "Local transport daily cap",
            "category": "taxi",
            "limit": {"type": "per_day", "amount": 200, "currency": "CNY"},
            "requiresReceipt": True,
            "message": "Local transport may not exceed 200 CNY per day",
        },
    ],
}

TECH_POLICY: dict = {
    "name": "Technology expense policy",
    "description": "AI services, cloud resources and software subscriptions",
    "priority": 2,
    "createdVia": "ui",
    "rules": [
        {
            "name": "AI services monthly cap",
            "category": "ai_token",
            "limit": {"type": "per_month", "amount": 5000, "currency": "CNY"},
            "requiresReceipt": True,
            "message": "AI services (OpenAI, Anthropic, ...) may not exceed 5000 CNY per month",
            "suggestion": "Ask your technical lead for a budget increase if you need more",
        },
        {
            "name": "Cloud resources monthly cap",
            "category": "cloud_resource",
            "limit": {"type": "per_month", "amount": 10000, "currency": "CNY"},
            "requiresReceipt": True,
            "requiresApproval": True,
            "message": "Cloud resources (AWS, GCP, Azure, ...) need approval",
            "suggestion": "Make sure cloud usage belongs to a project and is cost-optimized",
        },
        {
            "name": "Software subscription approval",
            "category": "software",
            "limit": {"type": "per_item", "amount": 1000, "currency": "CNY"},
            "requiresReceipt": True,
            "requiresApproval": True,
            "message": "Software subscriptions over 1000 CNY need approval",
            "suggestion": "Prefer software the company already licenses",
        },
    ],
}

BUSINESS_POLICY: dict = {
    "name": "Business expense policy",
    "description": "Client entertainment, training and conferences",
    "priority": 3,
    "createdVia": "ui",
    "rules": [
        {
            "name": "Client entertainment cap",
            "category": "client_entertainment",
            "limit": {"type": "per_item", "amount": 500, "currency": "CNY"},
            "requiresReceipt": True,
            "requiresApproval": True,
            "message": "Client entertainment may not exceed 500 CNY per person",
            "suggestion": "Note the client and the purpose when you submit",
        },
        {
            "name": "Training approval",
            "category": "training",
            "limit": {"type": "per_item", "amount": 3000, "currency": "CNY"},
            "requiresReceipt": True,
            "requiresApproval": True,
            "message": "Training over 3000 CNY needs manager approval",
            "suggestion": "Apply for a training budget in advance",
        },
        {
            "name": "Conference approval",
            "category": "conference",
            "limit": {"type": "per_item", "amount": 2000, "currency": "CNY"},
            "requiresReceipt": True,
            "requiresApproval": True,
            "message": "Conference expenses need approval",
        },
    ],
}

DEFAULT_POLICY_DOCUMENTS: tuple[dict, ...] = (TRAVEL_POLICY, TECH_POLICY, BUSINESS_POLICY)

DEFAULT_POLICY_SET: dict = {
    "name": "default",
    "version": 1,
    "city_tiers": {
        "multipliers": {"tier1": str(TIER1_MULTIPLIER)},
        "cities": {"tier1": list(TIER1_CITIES)},
    },
    "policies": list(DEFAULT_POLICY_DOCUMENTS),
}


def default_travel_policy(tenant_id: UUID) -> Policy:
    return policy_from_dict(TRAVEL_POLICY, tenant_id, strict=True)


def default_tech_policy(tenant_id: UUID) -> Policy:
    return policy_from_dict(TECH_POLICY, tenant_id, strict=True)


def default_business_policy(tenant_id: UUID) -> Policy:
    return policy_from_dict(BUSINESS_POLICY, tenant_id, strict=True)


def all_default_policies(tenant_id: UUID) -> tuple[Policy, ...]:
    """The three starter policies, in priority order."""
    return tuple(policy_from_dict(doc, tenant_id, strict=True) for doc in DEFAULT_POLICY_DOCUMENTS)
