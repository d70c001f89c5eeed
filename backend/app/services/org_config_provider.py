# backend/app/services/org_config_provider.py
"""
Organisation configuration capability.

The adjustment calculator never reads organisation settings tables directly;
it asks an ``OrgConfigProvider`` for billing settings, rate cards and closure
dates. Production wires the database-backed provider, tests pass a fixed one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
import logging
from typing import List, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException
from ..models.location import ClosureDate
from ..models.rate_card import RateCard
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrgBillingSettings:
    """Billing settings of one organisation."""

    org_id: str
    vat_enabled: bool = False
    vat_rate: Decimal = Decimal("0")
    currency_code: str = field(default_factory=lambda: settings.default_currency_code)
    timezone: str = field(default_factory=lambda: settings.default_timezone)

    @property
    def effective_vat_rate(self) -> Decimal:
        """Rate to charge, zero when VAT is switched off."""
        return self.vat_rate if self.vat_enabled else Decimal("0")


class OrgConfigProvider(Protocol):
    """Read-only access to the configuration an adjustment depends on."""

    def get_billing_settings(self, org_id: str) -> OrgBillingSettings:
        ...

    def get_rate_cards(self, org_id: str) -> Sequence[RateCard]:
        ...

    def get_closure_dates(self, org_id: str, start: date, end: date) -> Sequence[ClosureDate]:
        ...


class DatabaseOrgConfigProvider:
    """``OrgConfigProvider`` reading from the organisation tables."""

    def __init__(self, db: Session):
        self.db = db
        self.organisation_repository = RepositoryFactory.create_organisation_repository(db)

    def get_billing_settings(self, org_id: str) -> OrgBillingSettings:
        org = self.organisation_repository.get_by_id(org_id)
        if org is None:
            raise NotFoundException(
                "Organisation not found",
                code="ORGANISATION_NOT_FOUND",
                details={"org_id": org_id},
            )
        return OrgBillingSettings(
            org_id=org.id,
            vat_enabled=bool(org.vat_enabled),
            vat_rate=Decimal(str(org.vat_rate or 0)),
            currency_code=org.currency_code or settings.default_currency_code,
            timezone=org.default_timezone or settings.default_timezone,
        )

    def get_rate_cards(self, org_id: str) -> List[RateCard]:
        return self.organisation_repository.get_rate_cards(org_id)

    def get_closure_dates(self, org_id: str, start: date, end: date) -> List[ClosureDate]:
        return self.organisation_repository.get_closure_dates(org_id, start, end)


def build_org_config_provider(db: Session, provider: Optional[OrgConfigProvider] = None) -> OrgConfigProvider:
    return provider if provider is not None else DatabaseOrgConfigProvider(db)
