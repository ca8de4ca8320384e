"""Pricing plan catalogue and plan restriction checks.

A limit of -1 means unlimited.
"""

from typing import Any, Dict, List, Optional

UNLIMITED = -1

PRICING_PLANS: List[Dict[str, Any]] = [
    {
        "id": "free",
        "name": "Free",
        "price": 0,
        "currency": "USD",
        "interval": "monthly",
        "features": [
            "Basic funnel builder",
            "Up to 3 funnels",
            "Up to 10 pages",
            "Basic templates",
            "Community support",
            "500MB storage",
        ],
        "limits": {
            "funnels": 3,
            "pages": 10,
            "storage": "500MB",
            "bandwidth": "1GB",
            "users": 1,
            "automations": 0,
            "aiCredits": 0,
            "customDomains": 0,
            "analytics": False,
            "whiteLabel": False,
            "themeSelling": False,
            "priority": "low",
        },
    },
    {
        "id": "basic",
        "name": "Basic",
        "price": 49,
        "currency": "USD",
        "interval": "monthly",
        "features": [
            "Advanced funnel builder",
            "Unlimited funnels",
            "Unlimited pages",
            "AI component generation",
            "Premium templates",
            "Email support",
            "10GB storage",
            "Custom branding",
        ],
        "limits": {
            "funnels": UNLIMITED,
            "pages": UNLIMITED,
            "storage": "10GB",
            "bandwidth": "50GB",
            "users": 5,
            "automations": 0,
            "aiCredits": 1000,
            "customDomains": 3,
            "analytics": True,
            "whiteLabel": False,
            "themeSelling": False,
            "priority": "medium",
        },
        "popular": True,
    },
    {
        "id": "unlimited",
        "name": "Unlimited",
        "price": 199,
        "currency": "USD",
        "interval": "monthly",
        "features": [
            "Everything in Basic",
            "Advanced automations",
            "Social media scheduler",
            "Lead nurturing workflows",
            "Advanced analytics",
            "White-label options",
            "Priority support",
            "100GB storage",
            "API access",
        ],
        "limits": {
            "funnels": UNLIMITED,
            "pages": UNLIMITED,
            "storage": "100GB",
            "bandwidth": "500GB",
            "users": 25,
            "automations": UNLIMITED,
            "aiCredits": 10000,
            "customDomains": 10,
            "analytics": True,
            "whiteLabel": True,
            "themeSelling": False,
            "priority": "high",
        },
    },
    {
        "id": "agency",
        "name": "Agency Pro",
        "price": 450,
        "currency": "USD",
        "interval": "monthly",
        "features": [
            "Everything in Unlimited",
            "Theme marketplace access",
            "Sell custom themes",
            "Multi-agency management",
            "Sub-account billing",
            "Advanced reporting",
            "Dedicated account manager",
            "Unlimited storage",
            "Custom integrations",
        ],
        "limits": {
            "funnels": UNLIMITED,
            "pages": UNLIMITED,
            "storage": "unlimited",
            "bandwidth": "unlimited",
            "users": UNLIMITED,
            "automations": UNLIMITED,
            "aiCredits": UNLIMITED,
            "customDomains": UNLIMITED,
            "analytics": True,
            "whiteLabel": True,
            "themeSelling": True,
            "priority": "high",
        },
    },
]

UPGRADE_MESSAGES = {
    "ai-components": "Upgrade to Basic plan ($49/month) to unlock AI component generation",
    "automations": "Upgrade to Unlimited plan ($199/month) to access automation workflows",
    "theme-selling": "Upgrade to Agency Pro plan ($450/month) to sell custom themes",
    "white-label": "Upgrade to Unlimited plan ($199/month) for white-label options",
    "analytics": "Upgrade to Basic plan ($49/month) to access advanced analytics",
    "custom-domains": "Upgrade to Basic plan ($49/month) to use custom domains",
}


def get_plan(plan_name: Optional[str]) -> Optional[Dict[str, Any]]:
    """Find a plan by id or case-insensitive display name."""
    if not plan_name:
        return None
    wanted = plan_name.lower()
    for plan in PRICING_PLANS:
        if plan["id"] == wanted or plan["name"].lower() == wanted:
            return plan
    return None


def can_access_feature(user_plan: str, feature: str) -> bool:
    plan = get_plan(user_plan)
    if plan is None:
        return False
    limits = plan["limits"]
    checks = {
        "ai-components": lambda: limits["aiCredits"] != 0,
        "automations": lambda: limits["automations"] != 0,
        "theme-selling": lambda: limits["themeSelling"],
        "white-label": lambda: limits["whiteLabel"],
        "analytics": lambda: limits["analytics"],
        "custom-domains": lambda: limits["customDomains"] != 0,
    }
    check = checks.get(feature)
    return bool(check()) if check else True


def _within_limit(user_plan: str, limit_key: str, current: int) -> bool:
    plan = get_plan(user_plan)
    if plan is None:
        return False
    limit = plan["limits"][limit_key]
    return limit == UNLIMITED or current < limit


def can_create_funnel(user_plan: str, current_funnel_count: int) -> bool:
    return _within_limit(user_plan, "funnels", current_funnel_count)


def can_create_page(user_plan: str, current_page_count: int) -> bool:
    return _within_limit(user_plan, "pages", current_page_count)


def can_use_ai(user_plan: str, current_ai_credits: int) -> bool:
    return _within_limit(user_plan, "aiCredits", current_ai_credits)


def can_create_automation(user_plan: str, current_automation_count: int) -> bool:
    return _within_limit(user_plan, "automations", current_automation_count)


def get_upgrade_message(feature: str) -> str:
    return UPGRADE_MESSAGES.get(feature, "Upgrade your plan to access this feature")


def get_plan_limits_text(plan: Dict[str, Any]) -> List[str]:
    """Human-readable summary of a plan's funnel, page, AI and automation limits."""
    limits = plan["limits"]
    lines = [
        "Unlimited funnels"
        if limits["funnels"] == UNLIMITED
        else f"{limits['funnels']} funnels",
        "Unlimited pages" if limits["pages"] == UNLIMITED else f"{limits['pages']} pages",
    ]
    if limits["aiCredits"] == UNLIMITED:
        lines.append("Unlimited AI credits")
    elif limits["aiCredits"] == 0:
        lines.append("No AI features")
    else:
        lines.append(f"{limits['aiCredits']} AI credits")
    if limits["automations"] == UNLIMITED:
        lines.append("Unlimited automations")
    elif limits["automations"] == 0:
        lines.append("No automations")
    else:
        lines.append(f"{limits['automations']} automations")
    return lines
