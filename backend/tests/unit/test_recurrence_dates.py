from datetime import date

import pytest

from app.core.exceptions import ValidationException
from app.models import ClosureDate
from app.services.recurrence_dates import (
    exclude_closures,
    generate_occurrences,
    python_to_wire_weekday,
    wire_to_python_weekday,
)

THURSDAY = 3


class TestGenerateOccurrences:
    def test_weekly_dates_inside_range(self):
        dates = generate_occurrences(date(2025, 1, 7), date(2025, 2, 13), THURSDAY)

        assert dates == [
            date(2025, 1, 9),
            date(2025, 1, 16),
            date(2025, 1, 23),
            date(2025, 1, 30),
            date(2025, 2, 6),
            date(2025, 2, 13),
        ]
        assert all(day.weekday() == THURSDAY for day in dates)

    def test_start_on_matching_weekday_is_included(self):
        dates = generate_occurrences(date(2025, 1, 9), date(2025, 1, 9), THURSDAY)

        assert dates == [date(2025, 1, 9)]

    def test_empty_when_range_shorter_than_first_match(self):
        assert generate_occurrences(date(2025, 1, 10), date(2025, 1, 15), THURSDAY) == []

    def test_empty_when_end_before_start(self):
        assert generate_occurrences(date(2025, 2, 1), date(2025, 1, 1), THURSDAY) == []

    def test_dates_do_not_drift_across_clock_change(self):
        # UK clocks go forward on 2025-03-30
        dates = generate_occurrences(date(2025, 3, 20), date(2025, 4, 10), 6)

        assert dates == [date(2025, 3, 23), date(2025, 3, 30), date(2025, 4, 6)]

    @pytest.mark.parametrize("weekday", [-1, 7, 12])
    def test_invalid_weekday_raises(self, weekday):
        with pytest.raises(ValidationException):
            generate_occurrences(date(2025, 1, 1), date(2025, 2, 1), weekday)


class TestWeekdayConversion:
    def test_sunday_and_monday(self):
        assert wire_to_python_weekday(0) == 6
        assert wire_to_python_weekday(1) == 0
        assert python_to_wire_weekday(6) == 0
        assert python_to_wire_weekday(3) == 4

    def test_conversion_round_trips_every_day(self):
        assert [python_to_wire_weekday(wire_to_python_weekday(d)) for d in range(7)] == list(range(7))


class TestExcludeClosures:
    DATES = [date(2025, 1, 9), date(2025, 1, 16), date(2025, 1, 23)]

    def _closure(self, day, *, location_id=None, all_locations=False):
        return ClosureDate(date=day, location_id=location_id, applies_to_all_locations=all_locations)

    def test_org_wide_closure_removed(self):
        closures = [self._closure(date(2025, 1, 16), all_locations=True)]

        assert exclude_closures(self.DATES, closures, "loc-1") == [date(2025, 1, 9), date(2025, 1, 23)]

    def test_closure_for_other_location_kept(self):
        closures = [self._closure(date(2025, 1, 16), location_id="loc-2")]

        assert exclude_closures(self.DATES, closures, "loc-1") == self.DATES

    def test_closure_for_target_location_removed(self):
        closures = [self._closure(date(2025, 1, 23), location_id="loc-1")]

        assert exclude_closures(self.DATES, closures, "loc-1") == self.DATES[:2]

    def test_every_closure_applies_without_target_location(self):
        closures = [self._closure(date(2025, 1, 9), location_id="loc-2")]

        assert exclude_closures(self.DATES, closures, None) == self.DATES[1:]

    def test_result_is_ordered_subset(self):
        closures = [self._closure(date(2025, 1, 9), all_locations=True)]

        result = exclude_closures(self.DATES, closures, "loc-1")

        assert set(result) <= set(self.DATES)
        assert result == sorted(result)
