from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from conftest import NOW, fcm_token
from ukmband.models.event import EventStatus
from ukmband.models.event_personnel import EventPersonnel, PersonnelStatus
from ukmband.models.notification import Notification, NotificationType
from ukmband.services import reminders
from ukmband.services.reminders import NO_PRIOR_PRACTICE_DAYS, ReminderScanner, days_since_last_practice

pytestmark = pytest.mark.asyncio


async def _notifications(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(Notification).order_by(Notification.user_id))
        return result.scalars().all()


async def _lineup_with_recent_practice(make_user, make_event):
    """Two approved members who played together yesterday."""
    dina = await make_user("Dina", tokens=[fcm_token("dina")])
    bima = await make_user("Bima", tokens=[fcm_token("bima")])
    await make_event("Kemarin", NOW - timedelta(days=1), EventStatus.FINISHED, approved=[dina, bima])
    return dina, bima


class TestReminderScan:
    async def test_event_exactly_one_day_out(self, scanner, session_factory, push_sender, make_user, make_event):
        dina, bima = await _lineup_with_recent_practice(make_user, make_event)
        gig = await make_event("Pentas Seni", NOW + timedelta(hours=24), approved=[dina, bima])

        result = await scanner.scan(now=NOW)

        assert result.events_processed == 1
        assert result.notifications_created == ["1-day reminder for Pentas Seni"]
        assert len(result.reports) == 1
        assert sorted(result.reports[0].user_ids) == sorted([dina.id, bima.id])

        rows = await _notifications(session_factory)
        assert [r.user_id for r in rows] == sorted([dina.id, bima.id])
        for row in rows:
            assert row.type == NotificationType.EVENT_REMINDER
            assert f"eventId={gig.id}" in row.action_url
            assert row.is_read is False
        assert sorted(push_sender.tokens()) == sorted([fcm_token("dina"), fcm_token("bima")])

        body = result.to_dict()
        assert body["success"] is True
        assert body["eventsProcessed"] == 1
        assert body["timestamp"] == NOW.isoformat()

    async def test_two_hours_out(self, scanner, make_user, make_event):
        dina, bima = await _lineup_with_recent_practice(make_user, make_event)
        await make_event("Open Mic", NOW + timedelta(hours=2, minutes=10), approved=[dina, bima])

        result = await scanner.scan(now=NOW)
        assert result.notifications_created == ["2-hour reminder for Open Mic"]

    async def test_practice_reminder_without_prior_event(self, scanner, make_user, make_event):
        dina = await make_user("Dina")
        await make_event("Festival", NOW + timedelta(days=2, hours=12), approved=[dina])

        result = await scanner.scan(now=NOW)
        assert result.notifications_created == ["Practice reminder (3 days) for Festival"]

    async def test_skips_drafts_far_events_and_empty_lineups(self, scanner, session_factory, make_user, make_event):
        dina = await make_user("Dina")
        await make_event("Draft", NOW + timedelta(days=1), EventStatus.DRAFT, approved=[dina])
        await make_event("Far away", NOW + timedelta(days=4), approved=[dina])
        await make_event("Nobody yet", NOW + timedelta(days=1), open_roles=["Drum"])

        result = await scanner.scan(now=NOW)
        assert result.events_processed == 1
        assert result.notifications_created == []
        assert await _notifications(session_factory) == []

    async def test_repeated_runs_send_again_without_dedup(self, scanner, session_factory, make_user, make_event):
        dina, bima = await _lineup_with_recent_practice(make_user, make_event)
        await make_event("Pentas", NOW + timedelta(days=1), approved=[dina, bima])

        await scanner.scan(now=NOW)
        await scanner.scan(now=NOW + timedelta(minutes=30))
        assert len(await _notifications(session_factory)) == 4

    async def test_dedup_ledger_suppresses_repeats(self, session_factory, dispatcher, make_user, make_event):
        dina, bima = await _lineup_with_recent_practice(make_user, make_event)
        await make_event("Pentas", NOW + timedelta(days=1), approved=[dina, bima])
        scanner = ReminderScanner(session_factory, dispatcher, dedup_enabled=True)

        first = await scanner.scan(now=NOW)
        second = await scanner.scan(now=NOW + timedelta(minutes=30))

        assert first.notifications_created == ["1-day reminder for Pentas"]
        assert second.notifications_created == []
        assert len(await _notifications(session_factory)) == 2

    async def test_activity_failure_does_not_stop_reminders(self, session_factory, dispatcher, make_user, make_event):
        class BrokenActivity:
            async def scan(self, now):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        dina, bima = await _lineup_with_recent_practice(make_user, make_event)
        await make_event("Pentas", NOW + timedelta(days=1), approved=[dina, bima])
        scanner = ReminderScanner(session_factory, dispatcher, activity_scanner=BrokenActivity())

        result = await scanner.scan(now=NOW)
        assert result.notifications_created == ["1-day reminder for Pentas"]

    async def test_practice_and_one_day_fire_together(self, scanner, session_factory, make_user, make_event):
        dina = await make_user("Dina")
        await make_event("Pentas", NOW + timedelta(hours=24), approved=[dina])

        result = await scanner.scan(now=NOW)

        assert result.notifications_created == [
            "Practice reminder (3 days) for Pentas",
            "1-day reminder for Pentas",
        ]
        rows = await _notifications(session_factory)
        assert len(rows) == 2
        assert {r.type for r in rows} == {NotificationType.PRACTICE_REMINDER, NotificationType.EVENT_REMINDER}

    async def test_candidate_window_is_inclusive(self, scanner, make_event):
        await make_event("Starts now", NOW, open_roles=["Drum"])
        await make_event("Edge", NOW + timedelta(days=3), open_roles=["Drum"])
        await make_event("Just gone", NOW - timedelta(seconds=1), open_roles=["Drum"])
        await make_event("Too far", NOW + timedelta(days=3, seconds=1), open_roles=["Drum"])

        result = await scanner.scan(now=NOW)
        assert result.events_processed == 2

    async def test_pending_slots_are_not_practice(self, db, scanner, make_user, make_event):
        dina = await make_user("Dina")
        past = await make_event("Latihan", NOW - timedelta(days=1), EventStatus.FINISHED)
        db.add(
            EventPersonnel(
                event_id=past.id,
                user_id=dina.id,
                role="Vokal",
                status=PersonnelStatus.PENDING,
                created_at=NOW - timedelta(days=30),
            )
        )
        await db.commit()
        assert await days_since_last_practice(db, [dina.id], NOW) == NO_PRIOR_PRACTICE_DAYS

        await make_event("Festival", NOW + timedelta(days=2, hours=12), approved=[dina])
        result = await scanner.scan(now=NOW)
        assert result.notifications_created == ["Practice reminder (3 days) for Festival"]

    async def test_practice_lookup_failure_assumes_no_practice(self, scanner, monkeypatch, make_user, make_event):
        async def broken_lookup(db, user_ids, now):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(reminders, "days_since_last_practice", broken_lookup)
        dina, bima = await _lineup_with_recent_practice(make_user, make_event)
        await make_event("Pentas", NOW + timedelta(days=1), approved=[dina, bima])

        result = await scanner.scan(now=NOW)
        assert result.notifications_created == [
            "Practice reminder (3 days) for Pentas",
            "1-day reminder for Pentas",
        ]
