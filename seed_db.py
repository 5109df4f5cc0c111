import asyncio
from datetime import timedelta

from ukmband.database import Base, async_session, engine
from ukmband.models.event import Event, EventStatus
from ukmband.models.event_personnel import EventPersonnel, PersonnelStatus
from ukmband.models.event_song import EventSong
from ukmband.models.user import OrganizationLevel, User
from ukmband.utils.dates import utcnow


async def async_main():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    now = utcnow()

    async with async_session() as session:
        # Members
        admin = User(name="Raka Pengurus", email="raka@example.com", organization_lvl=OrganizationLevel.PENGURUS)
        u1 = User(name="Dina Vokal", email="dina@example.com", organization_lvl=OrganizationLevel.TALENT)
        u2 = User(name="Bima Gitar", email="bima@example.com", organization_lvl=OrganizationLevel.TALENT)
        u3 = User(name="Sari Keys", email="sari@example.com", organization_lvl=OrganizationLevel.SPECTA)
        u1.instruments = ["Vokal"]
        u2.instruments = ["Gitar", "Bass"]
        u3.instruments = ["Keyboard"]
        session.add_all([admin, u1, u2, u3])
        await session.flush()

        # A gig tomorrow with a partly filled lineup
        gig = Event(
            title="Pentas Seni Kampus",
            date=now + timedelta(days=1),
            location="Aula BINUS Bekasi",
            description="Penampilan akhir semester",
            status=EventStatus.PUBLISHED,
            created_by_id=admin.id,
        )
        session.add(gig)
        await session.flush()

        session.add_all([
            EventPersonnel(event_id=gig.id, user_id=u1.id, role="Vokal", status=PersonnelStatus.APPROVED, approved_at=now),
            EventPersonnel(event_id=gig.id, user_id=u2.id, role="Gitar 1", status=PersonnelStatus.APPROVED, approved_at=now),
            EventPersonnel(event_id=gig.id, role="Keyboard"),
            EventPersonnel(event_id=gig.id, role="Drum"),
        ])
        session.add_all([
            EventSong(event_id=gig.id, title="Sephia", artist="Sheila on 7", order=1, added_by_id=u1.id),
            EventSong(event_id=gig.id, title="Hujan", artist="Utopia", order=2, added_by_id=u2.id),
        ])

        await session.commit()
        print(f"Seeded 4 users and event #{gig.id} ({gig.title})")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(async_main())
