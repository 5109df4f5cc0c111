from datetime import timedelta

import pytest

from conftest import auth_headers
from ukmband.models.event import EventStatus
from ukmband.models.user import OrganizationLevel
from ukmband.utils.dates import utcnow


@pytest.mark.asyncio
class TestEventRoutes:
    async def test_dashboard_requires_session(self, client):
        resp = await client.get("/api/events/dashboard")
        assert resp.status_code == 401

    async def test_registration_lifecycle(self, client, make_user, make_event):
        boss = await make_user("Boss", OrganizationLevel.PENGURUS)
        sari = await make_user("Sari", instruments=["Piano"])
        event = await make_event("Gig", utcnow() + timedelta(days=10), open_roles=["Keyboard"])

        dashboard = (await client.get("/api/events/dashboard", headers=auth_headers(sari))).json()
        slot_id = dashboard["events"][0]["personnel"][0]["id"]

        resp = await client.post(
            f"/api/events/{event.id}/register",
            json={"personnelId": slot_id},
            headers=auth_headers(sari),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "PENDING"

        resp = await client.patch(
            f"/api/events/personnel/{slot_id}",
            json={"status": "APPROVED"},
            headers=auth_headers(sari),
        )
        assert resp.status_code == 403

        resp = await client.patch(
            f"/api/events/personnel/{slot_id}",
            json={"status": "APPROVED"},
            headers=auth_headers(boss),
        )
        assert resp.status_code == 200
        assert resp.json()["approved_at"] is not None

        dashboard = (await client.get("/api/events/dashboard", headers=auth_headers(sari))).json()
        seat = dashboard["events"][0]["personnel"][0]
        assert seat["status"] == "APPROVED"
        assert seat["user"]["name"] == "Sari"

        resp = await client.delete(f"/api/events/personnel/{slot_id}", headers=auth_headers(sari))
        assert resp.status_code == 200
        assert resp.json()["user_id"] is None

    async def test_taken_slot_is_409(self, client, make_user, make_event):
        dina = await make_user("Dina", instruments=["Vokal"])
        rival = await make_user("Rival", instruments=["Vokal"])
        event = await make_event("Gig", utcnow() + timedelta(days=10), open_roles=["Vokal"])
        dashboard = (await client.get("/api/events/dashboard", headers=auth_headers(dina))).json()
        slot_id = dashboard["events"][0]["personnel"][0]["id"]

        await client.post(f"/api/events/{event.id}/register", json={"personnelId": slot_id}, headers=auth_headers(dina))
        resp = await client.post(
            f"/api/events/{event.id}/register", json={"personnelId": slot_id}, headers=auth_headers(rival)
        )
        assert resp.status_code == 409

    async def test_status_change_is_manager_only(self, client, make_user, make_event):
        boss = await make_user("Boss", OrganizationLevel.COMMISSIONER)
        talent = await make_user("Talent")
        event = await make_event("Gig", utcnow() + timedelta(days=10), EventStatus.SUBMITTED)

        resp = await client.patch(
            f"/api/events/{event.id}/status", json={"status": "PUBLISHED"}, headers=auth_headers(talent)
        )
        assert resp.status_code == 403

        resp = await client.patch(
            f"/api/events/{event.id}/status", json={"status": "PUBLISHED"}, headers=auth_headers(boss)
        )
        assert resp.json() == {"id": event.id, "status": "PUBLISHED"}

        resp = await client.patch(
            f"/api/events/{event.id}/status", json={"status": "DRAFT"}, headers=auth_headers(boss)
        )
        assert resp.status_code == 400

    async def test_setlist_routes(self, client, make_user, make_event):
        dina = await make_user("Dina")
        outsider = await make_user("Outsider")
        event = await make_event("Gig", utcnow() + timedelta(days=10), approved=[dina])

        resp = await client.post(
            f"/api/events/{event.id}/songs",
            json={"title": "Sephia", "artist": "Sheila on 7"},
            headers=auth_headers(dina),
        )
        assert resp.status_code == 201
        first = resp.json()
        second = (
            await client.post(f"/api/events/{event.id}/songs", json={"title": "Hujan"}, headers=auth_headers(dina))
        ).json()

        resp = await client.put(
            f"/api/events/{event.id}/songs/reorder",
            json={"songIds": [second["id"], first["id"]]},
            headers=auth_headers(dina),
        )
        assert [s["title"] for s in resp.json()] == ["Hujan", "Sephia"]

        resp = await client.get(f"/api/events/{event.id}/songs", headers=auth_headers(outsider))
        assert resp.status_code == 403
