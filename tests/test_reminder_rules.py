from datetime import timedelta
from types import SimpleNamespace

import pytest

from conftest import NOW
from ukmband.models.event import EventStatus
from ukmband.services.reminders import (
    NO_PRIOR_PRACTICE_DAYS,
    ReminderType,
    days_since_last_practice,
    days_until,
    hours_until,
    is_one_day_due,
    is_practice_due,
    is_two_hour_due,
    window_key,
)


class TestWindows:
    @pytest.mark.parametrize(
        "days, due",
        [(1.0, True), (1.0999, True), (0.9001, True), (1.11, False), (0.89, False), (2.0, False)],
    )
    def test_one_day_window(self, days, due):
        assert is_one_day_due(days) is due

    @pytest.mark.parametrize(
        "hours, due",
        [(2.0, True), (2.49, True), (1.51, True), (2.51, False), (1.49, False), (24.0, False)],
    )
    def test_two_hour_window(self, hours, due):
        assert is_two_hour_due(hours) is due

    def test_fractional_distance(self):
        assert days_until(NOW + timedelta(hours=36), NOW) == pytest.approx(1.5)
        assert hours_until(NOW + timedelta(minutes=150), NOW) == pytest.approx(2.5)

    def test_naive_database_values_are_utc(self):
        naive = (NOW + timedelta(days=1)).replace(tzinfo=None)
        assert days_until(naive, NOW) == pytest.approx(1.0)

    def test_practice_threshold(self):
        assert is_practice_due(2) is False
        assert is_practice_due(3) is True
        assert is_practice_due(NO_PRIOR_PRACTICE_DAYS) is True


class TestWindowKey:
    def test_event_reminders_keyed_by_event_date(self):
        event = SimpleNamespace(date=NOW + timedelta(days=1))
        key = window_key(ReminderType.ONE_DAY, event, NOW)
        assert key == window_key(ReminderType.ONE_DAY, event, NOW + timedelta(hours=2))

    def test_practice_keyed_by_day_of_scan(self):
        event = SimpleNamespace(date=NOW + timedelta(days=2))
        assert window_key(ReminderType.PRACTICE, event, NOW) == "2030-03-09"
        assert window_key(ReminderType.PRACTICE, event, NOW + timedelta(days=1)) == "2030-03-10"


@pytest.mark.asyncio
class TestDaysSinceLastPractice:
    async def test_no_prior_event_means_999(self, db, make_user):
        user = await make_user("Dina")
        assert await days_since_last_practice(db, [user.id], NOW) == NO_PRIOR_PRACTICE_DAYS

    async def test_empty_lineup_means_999(self, db):
        assert await days_since_last_practice(db, [], NOW) == NO_PRIOR_PRACTICE_DAYS

    async def test_uses_most_recent_shared_event(self, db, make_user, make_event):
        dina = await make_user("Dina")
        bima = await make_user("Bima")
        await make_event("Old gig", NOW - timedelta(days=10), EventStatus.FINISHED, approved=[dina])
        await make_event("Last gig", NOW - timedelta(days=4, hours=6), EventStatus.FINISHED, approved=[bima])

        assert await days_since_last_practice(db, [dina.id, bima.id], NOW) == 4
        assert await days_since_last_practice(db, [dina.id], NOW) == 10

    async def test_ignores_events_user_did_not_play(self, db, make_user, make_event):
        dina = await make_user("Dina")
        other = await make_user("Other")
        await make_event("Someone else's gig", NOW - timedelta(days=1), approved=[other])
        assert await days_since_last_practice(db, [dina.id], NOW) == NO_PRIOR_PRACTICE_DAYS
