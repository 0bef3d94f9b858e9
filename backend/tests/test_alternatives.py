from datetime import date, datetime, time

from fulfillment.services.alternatives import format_alternative, suggest_alternatives
from fulfillment.services.availability import AvailabilityChecker

MONDAY = date(2026, 10, 19)


def test_format_alternative():
    assert format_alternative(date(2026, 10, 20), time(10, 0)) == "October 20, 2026 at 10:00"
    assert format_alternative(date(2026, 11, 5), time(9, 30)) == "November 05, 2026 at 09:30"


def test_returns_at_most_limit_dates(db, settings_cache, make_therapist):
    make_therapist()
    checker = AvailabilityChecker(db, settings_cache)
    found = suggest_alternatives(checker, MONDAY, time(10, 0), 60, 1)
    assert found == [
        "October 20, 2026 at 10:00",
        "October 21, 2026 at 10:00",
        "October 22, 2026 at 10:00",
    ]


def test_needs_enough_therapists(db, settings_cache, make_therapist, make_booking):
    first = make_therapist(first_name="Ann")
    make_therapist(first_name="Bea")
    # Ann is busy on the Tuesday, so only Wednesday onward has two free
    make_booking(first, datetime(2026, 10, 20, 10, 0), duration_minutes=120)
    checker = AvailabilityChecker(db, settings_cache)

    found = suggest_alternatives(checker, MONDAY, time(10, 0), 60, 2, days_to_check=3)

    assert found == ["October 21, 2026 at 10:00", "October 22, 2026 at 10:00"]


def test_search_window_is_bounded(db, settings_cache, make_therapist):
    make_therapist(windows=[(0, time(8, 0), time(18, 0))])  # Sundays only
    checker = AvailabilityChecker(db, settings_cache)
    assert suggest_alternatives(checker, MONDAY, time(10, 0), 60, 1, days_to_check=5) == []
    assert suggest_alternatives(checker, MONDAY, time(10, 0), 60, 1, days_to_check=6) == [
        "October 25, 2026 at 10:00"
    ]
