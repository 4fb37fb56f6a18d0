"""Events, invitations and RSVPs — the ownership rules end to end.

Learn: Tests cover:
1. Any signed-in user creates events; only organizer or admin changes them
2. The event list works anonymously and shows my RSVP when signed in
3. Only the organizer invites; no self-invites; one invitation per guest
4. Only the invited guest answers (admins included); one RSVP each
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import bearer


def _event_body(**overrides):
    body = {
        "title": "Launch Party",
        "description": "Cake.",
        "date": (datetime.now(timezone.utc) + timedelta(days=14)).isoformat(),
        "time": "18:30",
        "location": "Rooftop",
    }
    body.update(overrides)
    return body


async def _create_event(client, token, **overrides):
    r = await client.post("/api/events", json=_event_body(**overrides), headers=bearer(token))
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def _invite(client, token, event_id, guest_id):
    return await client.post(
        "/api/invitations",
        json={"event_id": event_id, "guest_id": str(guest_id), "message": "Come!"},
        headers=bearer(token),
    )


# ═══════════════════════════════════════════════════════════
# Events
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_event_requires_token(client):
    r = await client.post("/api/events", json=_event_body())
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_event(client, make_user):
    organizer, token = await make_user("organizer")
    event = await _create_event(client, token)
    assert event["organizer_id"] == str(organizer.id)
    assert event["status"] == "active"


@pytest.mark.asyncio
async def test_event_in_the_past_rejected(client, make_user):
    _, token = await make_user("organizer")
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    r = await client.post("/api/events", json=_event_body(date=past), headers=bearer(token))
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_list_events_anonymously(client, make_user):
    _, token = await make_user("organizer")
    await _create_event(client, token)
    r = await client.get("/api/events")
    assert r.status_code == 200
    assert r.json()["count"] == 1
    assert r.json()["data"][0]["my_rsvp_status"] is None


@pytest.mark.asyncio
async def test_list_events_with_bad_token_is_anonymous(client, make_user):
    _, token = await make_user("organizer")
    await _create_event(client, token)
    r = await client.get("/api/events", headers=bearer("garbage"))
    assert r.status_code == 200
    assert r.json()["count"] == 1


@pytest.mark.asyncio
async def test_list_events_includes_every_status_by_date(client, make_user):
    _, token = await make_user("organizer")
    later = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
    late = await _create_event(client, token, title="Later", date=later)
    soon = await _create_event(client, token, title="Sooner")
    r = await client.put(
        f"/api/events/{soon['id']}", json={"status": "cancelled"}, headers=bearer(token)
    )
    assert r.status_code == 200

    r = await client.get("/api/events")
    assert [e["id"] for e in r.json()["data"]] == [soon["id"], late["id"]]
    assert r.json()["data"][0]["status"] == "cancelled"


@pytest.mark.asyncio
async def test_list_events_filtered_by_status(client, make_user):
    _, token = await make_user("organizer")
    kept = await _create_event(client, token, title="Still on")
    dropped = await _create_event(client, token, title="Called off")
    await client.put(
        f"/api/events/{dropped['id']}", json={"status": "cancelled"}, headers=bearer(token)
    )

    r = await client.get("/api/events", params={"status": "active"})
    assert [e["id"] for e in r.json()["data"]] == [kept["id"]]

    r = await client.get("/api/events", params={"status": "cancelled"})
    assert [e["id"] for e in r.json()["data"]] == [dropped["id"]]

    r = await client.get("/api/events", params={"status": "postponed"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_only_organizer_or_admin_updates(client, make_user):
    _, owner_token = await make_user("organizer")
    _, other_token = await make_user("organizer")
    _, admin_token = await make_user("admin")
    event = await _create_event(client, owner_token)
    url = f"/api/events/{event['id']}"

    r = await client.put(url, json={"title": "Hijacked"}, headers=bearer(other_token))
    assert r.status_code == 403
    assert r.json()["message"] == "Not authorized to update this event"

    r = await client.put(url, json={"title": "Renamed"}, headers=bearer(owner_token))
    assert r.status_code == 200
    assert r.json()["data"]["title"] == "Renamed"

    r = await client.put(url, json={"status": "cancelled"}, headers=bearer(admin_token))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_delete_event(client, make_user):
    _, owner_token = await make_user("organizer")
    _, other_token = await make_user("guest")
    event = await _create_event(client, owner_token)
    url = f"/api/events/{event['id']}"

    assert (await client.delete(url, headers=bearer(other_token))).status_code == 403
    assert (await client.delete(url, headers=bearer(owner_token))).status_code == 200
    r = await client.get(url)
    assert r.status_code == 404
    assert r.json()["message"] == "Event not found"


# ═══════════════════════════════════════════════════════════
# Invitations
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_invitation_flow(client, make_user):
    organizer, org_token = await make_user("organizer")
    guest, guest_token = await make_user("guest")
    event = await _create_event(client, org_token)

    r = await _invite(client, org_token, event["id"], guest.id)
    assert r.status_code == 201
    invitation = r.json()["data"]
    assert invitation["status"] == "sent"
    assert invitation["organizer_id"] == str(organizer.id)

    r = await client.get("/api/invitations/mine", headers=bearer(guest_token))
    assert [i["id"] for i in r.json()["data"]] == [invitation["id"]]

    r = await client.get(f"/api/invitations/{invitation['id']}", headers=bearer(guest_token))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_duplicate_invitation(client, make_user):
    _, org_token = await make_user("organizer")
    guest, _ = await make_user("guest")
    event = await _create_event(client, org_token)
    assert (await _invite(client, org_token, event["id"], guest.id)).status_code == 201

    r = await _invite(client, org_token, event["id"], guest.id)
    assert r.status_code == 400
    assert r.json()["message"] == "Guest already invited to this event"


@pytest.mark.asyncio
async def test_only_organizer_invites(client, make_user):
    _, org_token = await make_user("organizer")
    _, stranger_token = await make_user("organizer")
    guest, _ = await make_user("guest")
    event = await _create_event(client, org_token)

    r = await _invite(client, stranger_token, event["id"], guest.id)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_organizer_cannot_invite_themselves(client, make_user):
    organizer, org_token = await make_user("organizer")
    event = await _create_event(client, org_token)
    r = await _invite(client, org_token, event["id"], organizer.id)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_strangers_cannot_read_invitations(client, make_user):
    _, org_token = await make_user("organizer")
    guest, _ = await make_user("guest")
    _, stranger_token = await make_user("guest")
    event = await _create_event(client, org_token)
    invitation = (await _invite(client, org_token, event["id"], guest.id)).json()["data"]

    r = await client.get(f"/api/invitations/{invitation['id']}", headers=bearer(stranger_token))
    assert r.status_code == 403


# ═══════════════════════════════════════════════════════════
# RSVPs
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_rsvp_flow(client, make_user):
    _, org_token = await make_user("organizer")
    guest, guest_token = await make_user("guest")
    _, admin_token = await make_user("admin")
    event = await _create_event(client, org_token)
    invitation = (await _invite(client, org_token, event["id"], guest.id)).json()["data"]
    body = {"invitation_id": invitation["id"], "status": "going", "guests_count": 2}

    # Not even an admin answers for the guest
    r = await client.post("/api/rsvps", json=body, headers=bearer(admin_token))
    assert r.status_code == 403

    r = await client.post("/api/rsvps", json=body, headers=bearer(guest_token))
    assert r.status_code == 201
    rsvp = r.json()["data"]
    assert rsvp["user_id"] == str(guest.id)
    assert rsvp["event_id"] == event["id"]

    r = await client.post("/api/rsvps", json=body, headers=bearer(guest_token))
    assert r.status_code == 400
    assert r.json()["message"] == "RSVP already submitted for this invitation"

    r = await client.get("/api/events", headers=bearer(guest_token))
    assert r.json()["data"][0]["my_rsvp_status"] == "going"

    r = await client.get("/api/rsvps/mine", headers=bearer(guest_token))
    assert r.json()["count"] == 1


@pytest.mark.asyncio
async def test_rsvp_update_rules(client, make_user):
    _, org_token = await make_user("organizer")
    guest, guest_token = await make_user("guest")
    _, admin_token = await make_user("admin")
    event = await _create_event(client, org_token)
    invitation = (await _invite(client, org_token, event["id"], guest.id)).json()["data"]
    rsvp = (
        await client.post(
            "/api/rsvps",
            json={"invitation_id": invitation["id"], "status": "maybe"},
            headers=bearer(guest_token),
        )
    ).json()["data"]
    url = f"/api/rsvps/{rsvp['id']}"

    r = await client.put(url, json={"status": "not_going"}, headers=bearer(org_token))
    assert r.status_code == 403

    r = await client.put(url, json={"status": "going"}, headers=bearer(guest_token))
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "going"

    r = await client.delete(url, headers=bearer(admin_token))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_rsvp_validation(client, make_user):
    _, guest_token = await make_user("guest")
    r = await client.post(
        "/api/rsvps",
        json={"invitation_id": "3f1c9a2b-0000-4000-8000-000000000000", "status": "yes"},
        headers=bearer(guest_token),
    )
    assert r.status_code == 400
