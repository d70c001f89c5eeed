# backend/app/services/rate_resolver.py
"""
Per-lesson rate resolution.

Picks the price of one lesson from an organisation's rate cards. Resolution
never fails: when nothing matches, a documented fallback rate is used and the
result is flagged as low confidence so callers can warn the operator.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..core.constants import FALLBACK_LESSON_RATE_MINOR
from ..models.rate_card import RateCard


class RateSource(str, Enum):
    """Where a resolved rate came from, in resolution order."""

    MANUAL_OVERRIDE = "manual_override"
    STUDENT_RATE_CARD = "student_rate_card"
    DURATION_MATCH = "duration_match"
    ORG_DEFAULT = "org_default"
    FIRST_AVAILABLE = "first_available"
    FALLBACK = "fallback"

    @property
    def is_low_confidence(self) -> bool:
        return self not in (RateSource.MANUAL_OVERRIDE, RateSource.STUDENT_RATE_CARD)


@dataclass(frozen=True)
class RateResolution:
    amount_minor: int
    source: RateSource

    @property
    def low_confidence(self) -> bool:
        return self.source.is_low_confidence


def resolve_rate(
    duration_minutes: int,
    rate_cards: Sequence[RateCard],
    override_minor: Optional[int] = None,
    student_rate_card_id: Optional[str] = None,
) -> RateResolution:
    """
    Resolve the price of a single lesson in minor units.

    Order:
        1. ``override_minor`` when given (even 0)
        2. the student's assigned rate card, if it is among ``rate_cards``
        3. a card whose duration matches exactly
        4. the organisation's default card
        5. the first card
        6. ``FALLBACK_LESSON_RATE_MINOR``
    """
    if override_minor is not None:
        return RateResolution(int(override_minor), RateSource.MANUAL_OVERRIDE)

    if student_rate_card_id:
        for card in rate_cards:
            if card.id == student_rate_card_id:
                return RateResolution(int(card.rate_amount), RateSource.STUDENT_RATE_CARD)

    for card in rate_cards:
        if card.duration_mins == duration_minutes:
            return RateResolution(int(card.rate_amount), RateSource.DURATION_MATCH)

    for card in rate_cards:
        if card.is_default:
            return RateResolution(int(card.rate_amount), RateSource.ORG_DEFAULT)

    if rate_cards:
        return RateResolution(int(rate_cards[0].rate_amount), RateSource.FIRST_AVAILABLE)

    return RateResolution(FALLBACK_LESSON_RATE_MINOR, RateSource.FALLBACK)
