"""
plans.py -- Subscription tier catalogue.

Billing itself happens at an external provider; this only describes the
tiers and their limits. A limit of None means unlimited.
"""

from __future__ import annotations

from typing import Any

PLANS: dict[str, dict[str, Any]] = {
    "free": {
        "label": "Free",
        "price_monthly": 0.0,
        "memory_limit": 10,
        "family_limit": 2,
        "features": [
            "{memory_limit} memories",
            "Basic transcription",
            "Share with {family_limit} family members",
        ],
    },
    "premium": {
        "label": "Premium",
        "price_monthly": 9.99,
        "memory_limit": None,
        "family_limit": None,
        "features": [
            "Unlimited memories",
            "Advanced AI transcription",
            "Unlimited AI stories",
            "Share with unlimited family",
            "Voice search",
            "Priority support",
        ],
    },
    "family": {
        "label": "Family",
        "price_monthly": 19.99,
        "memory_limit": None,
        "family_limit": None,
        "features": [
            "Everything in Premium",
            "Up to 6 family accounts",
            "Shared family timeline",
            "Family collaboration tools",
        ],
    },
}

VALID_PLANS: set[str] = set(PLANS.keys())

PREMIUM_PLANS: set[str] = {"premium", "family"}


def is_valid_plan(plan: str) -> bool:
    return plan in VALID_PLANS


def plan_catalogue(free_memory_limit: int = 10, free_family_limit: int = 2) -> list[dict[str, Any]]:
    """The tiers as served to clients, with the free limits this deployment enforces."""
    catalogue = []
    for plan_id, info in PLANS.items():
        entry = {"id": plan_id, **info}
        if plan_id == "free":
            limits = {"memory_limit": free_memory_limit, "family_limit": free_family_limit}
            entry.update(limits)
            entry["features"] = [feature.format(**limits) for feature in info["features"]]
        else:
            entry["features"] = list(info["features"])
        catalogue.append(entry)
    return catalogue
