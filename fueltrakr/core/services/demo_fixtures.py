"""Fixture data used when the application runs in demo mode."""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fueltrakr.domain.models.fuel import FuelEntry, Location
from fueltrakr.domain.models.user import User

DEMO_TOKEN_PREFIX = "demo-token-"
DEV_TOKEN_PREFIX = "dev-token-"

DEMO_USERS: List[User] = [
    User(id="demo-admin", email="admin@napleton.com", name="Admin User", role="admin"),
    User(id="demo-porter", email="porter@napleton.com", name="John Porter", role="porter"),
]

DEMO_CREDENTIALS: Dict[str, str] = {
    "admin@napleton.com": "admin123",
    "porter@napleton.com": "porter123",
}


def demo_token(user: User) -> str:
    return f"{DEMO_TOKEN_PREFIX}{user.role}"


def demo_user_for_token(token: Optional[str]) -> Optional[User]:
    """Resolves ``demo-token-<role>`` (or a dev token) to the demo user with that role."""
    if not token:
        return None
    for prefix in (DEMO_TOKEN_PREFIX, DEV_TOKEN_PREFIX):
        if token.startswith(prefix):
            role = token[len(prefix):]
            break
    else:
        return None
    return next((user for user in DEMO_USERS if user.role == role), None)


def demo_fuel_entries(now: datetime) -> List[FuelEntry]:
    """Two seeded entries, yesterday and the day before, newest first."""
    porter = DEMO_USERS[1]
    yesterday = now - timedelta(days=1)
    two_days_ago = now - timedelta(days=2)
    return [
        FuelEntry(
            id="demo-entry-1",
            user_id=porter.id,
            user_name=porter.name,
            stock_number="STK123",
            mileage=45000,
            fuel_amount=12.5,
            fuel_cost=42.50,
            timestamp=yesterday,
            notes="Regular maintenance fill-up",
            location=Location(latitude=41.8781, longitude=-87.6298, address="Chicago, IL"),
            submitted_at=yesterday,
        ),
        FuelEntry(
            id="demo-entry-2",
            user_id=porter.id,
            user_name=porter.name,
            stock_number="STK456",
            mileage=32000,
            fuel_amount=8.2,
            fuel_cost=28.15,
            timestamp=two_days_ago,
            notes="Quick top-off",
            location=Location(latitude=41.8881, longitude=-87.6198, address="Chicago, IL"),
            submitted_at=two_days_ago,
        ),
    ]
