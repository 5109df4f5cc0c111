from datetime import timedelta

import pytest
from sqlalchemy import select

from conftest import NOW, RecordingPushSender, fcm_token
from ukmband.models.fcm_subscription import FCMSubscription
from ukmband.models.notification import Notification, NotificationType
from ukmband.models.user import OrganizationLevel
from ukmband.services import composer
from ukmband.services.audience import (
    Audience,
    approved_user_ids,
    resolve_audience,
    select_recipient_ids,
    unique_ids,
)
from ukmband.services.composer import ComposedNotification
from ukmband.services.dispatcher import NotificationDispatcher


def test_unique_ids_keeps_order():
    assert unique_ids([3, None, 1, 3, 2, 1]) == [3, 1, 2]


@pytest.mark.asyncio
class TestAudience:
    async def test_all_members_vs_team_only(self, db, make_user):
        boss = await make_user("Boss", OrganizationLevel.COMMISSIONER, tokens=[fcm_token("boss")])
        talent = await make_user("Talent", OrganizationLevel.TALENT, tokens=[fcm_token("t")])
        specta = await make_user("Specta", OrganizationLevel.SPECTA, tokens=[fcm_token("s")])
        await make_user("Silent", OrganizationLevel.TALENT)

        assert await resolve_audience(db, Audience.all_members()) == [boss.id, talent.id, specta.id]
        assert await resolve_audience(db, Audience.team_only()) == [talent.id, specta.id]

    async def test_multiple_tokens_count_once(self, db, make_user):
        user = await make_user("Dina", tokens=[fcm_token("a"), fcm_token("b")])
        assert await select_recipient_ids(db) == [user.id]

    async def test_inactive_tokens_do_not_qualify(self, db, make_user):
        user = await make_user("Dina", tokens=[fcm_token("a")])
        sub = (await db.execute(select(FCMSubscription))).scalar_one()
        sub.is_active = False
        await db.commit()
        assert await select_recipient_ids(db) == []
        assert await select_recipient_ids(db, require_active_subscription=False) == [user.id]

    async def test_explicit_ids_are_deduplicated(self, db, make_user):
        dina = await make_user("Dina")
        bima = await make_user("Bima")
        ids = [bima.id, bima.id, dina.id]
        assert await resolve_audience(db, Audience.explicit(ids)) == [bima.id, dina.id]

    async def test_explicit_ids_drop_unknown_users(self, db, make_user):
        dina = await make_user("Dina")
        ids = [424242, dina.id, 424243]
        assert await resolve_audience(db, Audience.explicit(ids)) == [dina.id]
        assert await resolve_audience(db, Audience.explicit([424242])) == []

    async def test_approved_user_ids_excludes(self, db, make_user, make_event):
        dina = await make_user("Dina")
        bima = await make_user("Bima")
        event = await make_event("Gig", NOW + timedelta(days=1), approved=[dina, bima], open_roles=["Drum"])
        assert await approved_user_ids(db, event.id) == [dina.id, bima.id]
        assert await approved_user_ids(db, event.id, exclude=[dina.id, None]) == [bima.id]


@pytest.mark.asyncio
class TestDispatcher:
    async def test_push_failure_does_not_block_other_rows(self, session_factory, make_user, make_event):
        dina = await make_user("Dina", tokens=[fcm_token("dina-phone"), fcm_token("dina-laptop")])
        bima = await make_user("Bima", tokens=[fcm_token("bima")])
        sari = await make_user("Sari")
        event = await make_event("Gig", NOW + timedelta(days=1))

        sender = RecordingPushSender(failing=[fcm_token("dina-laptop"), fcm_token("bima")])
        dispatcher = NotificationDispatcher(session_factory, sender, max_concurrency=2)

        report = await dispatcher.dispatch_to(
            composer.one_day_reminder(event), [dina.id, bima.id, sari.id]
        )

        assert report.total == 3
        assert report.delivered == 3
        assert report.push_sent == 1
        assert report.push_failed == 2
        by_user = {o.user_id: o for o in report.outcomes}
        assert by_user[dina.id].push.sent == 1 and by_user[dina.id].push.failed == 1
        assert by_user[bima.id].push.success is False
        assert by_user[sari.id].push.total == 0
        assert all(r["status"] == "fulfilled" for r in report.results())

        async with session_factory() as session:
            rows = (await session.execute(select(Notification))).scalars().all()
            assert sorted(r.user_id for r in rows) == sorted([dina.id, bima.id, sari.id])

            subs = {
                s.token: s
                for s in (await session.execute(select(FCMSubscription))).scalars().all()
            }
            assert subs[fcm_token("dina-laptop")].failure_count == 1
            assert subs[fcm_token("dina-laptop")].last_failure_at is not None
            assert subs[fcm_token("bima")].is_active is True
            assert subs[fcm_token("dina-phone")].failure_count == 0

    async def test_store_failure_is_reported_not_raised(self, dispatcher):
        broken = ComposedNotification(
            title=None, message="x", type=NotificationType.EVENT_REMINDER, action_url="/"
        )
        report = await dispatcher.dispatch_to(broken, [999])
        assert report.total == 1
        assert report.delivered == 0
        outcome = report.outcomes[0]
        assert outcome.error.startswith("database:")
        assert report.results()[0]["status"] == "rejected"

    async def test_rows_for_unknown_users_are_rejected(self, dispatcher, session_factory, make_event):
        event = await make_event("Gig", NOW + timedelta(days=1))
        report = await dispatcher.dispatch_to(composer.one_day_reminder(event), [424242])

        assert report.delivered == 0
        assert report.outcomes[0].error.startswith("database:")
        async with session_factory() as session:
            assert (await session.execute(select(Notification))).scalars().all() == []

    async def test_empty_audience_sends_nothing(self, dispatcher, push_sender):
        report = await dispatcher.dispatch(
            composer.team_member_join("Dina", "Vokal"), Audience.team_only()
        )
        assert report.total == 0
        assert push_sender.messages == []
