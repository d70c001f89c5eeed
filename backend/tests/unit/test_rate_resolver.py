from app.core.constants import FALLBACK_LESSON_RATE_MINOR
from app.models import RateCard
from app.services.rate_resolver import RateSource, resolve_rate


def _card(card_id: str, duration: int, amount: int, *, default: bool = False) -> RateCard:
    return RateCard(id=card_id, duration_mins=duration, rate_amount=amount, is_default=default)


CARDS = [
    _card("rc-45", 45, 4500),
    _card("rc-30", 30, 3500),
    _card("rc-60", 60, 6000, default=True),
]


class TestResolveRate:
    def test_override_wins_even_when_zero(self):
        result = resolve_rate(30, CARDS, override_minor=0, student_rate_card_id="rc-45")

        assert result.amount_minor == 0
        assert result.source is RateSource.MANUAL_OVERRIDE
        assert result.low_confidence is False

    def test_student_card_beats_duration_match(self):
        result = resolve_rate(30, CARDS, student_rate_card_id="rc-45")

        assert result.amount_minor == 4500
        assert result.source is RateSource.STUDENT_RATE_CARD
        assert result.low_confidence is False

    def test_unknown_student_card_falls_through_to_duration(self):
        result = resolve_rate(30, CARDS, student_rate_card_id="missing")

        assert result.amount_minor == 3500
        assert result.source is RateSource.DURATION_MATCH

    def test_default_card_when_no_duration_matches(self):
        result = resolve_rate(20, CARDS)

        assert result.amount_minor == 6000
        assert result.source is RateSource.ORG_DEFAULT
        assert result.low_confidence is True

    def test_first_card_when_no_default(self):
        cards = [_card("a", 45, 4100), _card("b", 60, 5200)]

        result = resolve_rate(30, cards)

        assert result.amount_minor == 4100
        assert result.source is RateSource.FIRST_AVAILABLE
        assert result.low_confidence is True

    def test_fallback_without_cards(self):
        result = resolve_rate(30, [])

        assert result.amount_minor == FALLBACK_LESSON_RATE_MINOR == 3000
        assert result.source is RateSource.FALLBACK
        assert result.low_confidence is True

    def test_result_is_always_non_negative(self):
        for duration in (0, 15, 30, 45, 60, 90):
            assert resolve_rate(duration, CARDS).amount_minor >= 0
