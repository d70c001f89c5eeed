# backend/tests/conftest.py
"""
Pytest configuration for the TuitionDesk backend.

Tests run against an in-memory SQLite database: every test gets freshly
created tables and a session bound to the application engine.
"""

import os

# Set testing mode BEFORE any app imports so the engine is built for SQLite
os.environ["is_testing"] = "true"

from datetime import date
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Sequence

from fastapi.testclient import TestClient
import pytest
from sqlalchemy.orm import Session

from app.api.dependencies.database import get_db
from app.auth import create_access_token
from app.core.config import settings
from app.database import Base, SessionLocal, engine
from app.main import app
from app.models import ClosureDate, RateCard
from app.services.org_config_provider import OrgBillingSettings

settings.is_testing = True


@pytest.fixture(scope="function")
def db() -> Iterator[Session]:
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> Iterator[TestClient]:
    """Create a test client sharing the test session."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


def auth_headers_for(user_id: str) -> Dict[str, str]:
    token = create_access_token(data={"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


class StaticOrgConfigProvider:
    """In-memory organisation configuration."""

    def __init__(
        self,
        *,
        org_id: str = "org",
        vat_enabled: bool = False,
        vat_rate: Decimal = Decimal("0"),
        currency_code: str = "GBP",
        rate_cards: Optional[Sequence[RateCard]] = None,
        closures: Optional[Sequence[ClosureDate]] = None,
    ):
        self.billing = OrgBillingSettings(
            org_id=org_id,
            vat_enabled=vat_enabled,
            vat_rate=vat_rate,
            currency_code=currency_code,
            timezone="Europe/London",
        )
        self.rate_cards: List[RateCard] = list(rate_cards or [])
        self.closures: List[ClosureDate] = list(closures or [])
        self.closure_requests: List[tuple] = []

    def get_billing_settings(self, org_id: str) -> OrgBillingSettings:
        return self.billing

    def get_rate_cards(self, org_id: str) -> List[RateCard]:
        return self.rate_cards

    def get_closure_dates(self, org_id: str, start: date, end: date) -> List[ClosureDate]:
        self.closure_requests.append((org_id, start, end))
        return [closure for closure in self.closures if start <= closure.date <= end]


@pytest.fixture
def static_config() -> type:
    return StaticOrgConfigProvider
