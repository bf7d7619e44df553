# plan_helpers.py
from decimal import Decimal

from models import db, Plan


DEFAULT_PLANS = [
    {
        "id": "starter",
        "name": "Starter",
        "price": Decimal("150"),
        "description": "Target 2% to 5%",
        "features": ["Basic Bot Access", "Standard Risk Settings", "Community Support"],
        "popular": False,
    },
    {
        "id": "growth",
        "name": "Growth",
        "price": Decimal("460"),
        "description": "Target 6% to 17%",
        "features": ["Full Bot Access", "Advanced Risk Controls", "Priority Support", "Paper Trading Mode"],
        "popular": True,
    },
    {
        "id": "max",
        "name": "Max",
        "price": Decimal("740"),
        "description": "Target 18% to 39%",
        "features": [
            "All Growth Features",
            "AI Strategy Insights",
            "Dedicated Account Manager",
            "Early Access to New Features",
        ],
        "popular": False,
    },
]


def seed_default_plans():
    """Create the starter/growth/max plans that do not exist yet. Returns the ids created."""
    created = []
    for plan_data in DEFAULT_PLANS:
        if db.session.get(Plan, plan_data["id"]):
            continue
        db.session.add(Plan(is_active=True, **plan_data))
        created.append(plan_data["id"])

    db.session.commit()
    return created
