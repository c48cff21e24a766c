"""
Integration test for a full mock-interview round over HTTP.

Flow:
1. Admin creates an event and students join
2. Admin generates pairs
3. Both sides propose slots and the interviewee confirms
4. Early meeting-link and feedback attempts are refused
5. Admin reads analytics and exports CSVs
"""

from datetime import datetime, timedelta, timezone

import pytest

API = "/api/v1"


def _iso(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def window():
    now = datetime.now(timezone.utc).replace(second=0, microsecond=0)
    slot = (now + timedelta(days=2)).replace(hour=10, minute=0)
    return {"start": now - timedelta(hours=1), "end": now + timedelta(days=10), "slot": slot}


class TestInterviewRound:
    async def test_full_round(self, client, admin, students, headers, sender, window):
        alice, bob = students[:2]

        # 1. Event and registrations
        response = await client.post(
            f"{API}/events",
            json={
                "name": "Winter Mock Round",
                "start_date": _iso(window["start"]),
                "end_date": _iso(window["end"]),
                "capacity": 10,
            },
            headers=headers(admin),
        )
        assert response.status_code == 201
        event_id = response.json()["id"]

        for student in (alice, bob):
            joined = await client.post(f"{API}/events/{event_id}/join", headers=headers(student))
            assert joined.json() == {"event_id": event_id, "joined": True, "already_joined": False}

        listed = (await client.get(f"{API}/events", headers=headers(alice))).json()
        assert [(e["id"], e["joined"], e["participant_count"]) for e in listed] == [(event_id, True, 2)]

        # 2. Pairs
        generated = await client.post(f"{API}/events/{event_id}/pairs/generate", headers=headers(admin))
        assert generated.status_code == 200
        assert generated.json()["count"] == 2

        mine = (await client.get(f"{API}/events/{event_id}/pairs", headers=headers(alice))).json()
        assert sorted(p["my_role"] for p in mine) == ["interviewee", "interviewer"]
        assert all(p["meeting_link"] is None for p in mine)
        pair = next(p for p in mine if p["my_role"] == "interviewer")
        assert pair["interviewee"]["id"] == bob.id
        pair_url = f"{API}/pairs/{pair['id']}"

        # 3. Negotiation
        slot = _iso(window["slot"])
        later = _iso(window["slot"] + timedelta(hours=2))
        first = await client.post(
            f"{pair_url}/proposals", json={"slots": [slot, later]}, headers=headers(alice)
        )
        assert first.status_code == 200
        assert first.json()["common"] is None

        second = await client.post(f"{pair_url}/proposals", json={"slots": [later, slot]}, headers=headers(bob))
        assert second.json()["common"] == slot
        assert second.json()["partner"] == [slot, later]

        confirmed = await client.post(f"{pair_url}/confirm", json={"scheduled_at": slot}, headers=headers(bob))
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "scheduled"
        assert confirmed.json()["scheduled_at"] == slot
        assert sorted(sender.recipients("Interview scheduled")) == sorted([alice.email, bob.email])
        invite = next(attachments for _, s, _, attachments in sender.sent if s == "Interview scheduled")
        assert invite[0].filename.endswith(".ics")

        # 4. Too early for the link and for feedback
        link = await client.put(
            f"{pair_url}/meeting-link",
            json={"meeting_link": "https://meet.example.com/room"},
            headers=headers(admin),
        )
        assert link.status_code == 400
        assert link.json()["error"]["code"] == "INVALID_STATE"

        outsider = await client.get(f"{pair_url}/proposals", headers=headers(students[2]))
        assert outsider.status_code == 403

        feedback = await client.post(
            f"{API}/feedback", json={"pair_id": pair["id"], "marks": 80}, headers=headers(alice)
        )
        assert feedback.status_code == 400

        # 5. Reporting
        analytics = (await client.get(f"{API}/events/{event_id}/analytics", headers=headers(admin))).json()
        assert analytics == {
            "event_id": event_id,
            "joined": 2,
            "pairs": 2,
            "scheduled_pairs": 1,
            "feedback_submissions": 0,
            "average_score": None,
        }

        export = await client.get(f"{API}/events/{event_id}/participants.csv", headers=headers(admin))
        assert export.status_code == 200
        assert export.headers["content-type"].startswith("text/csv")
        assert alice.email in export.text and bob.email in export.text

        forbidden = await client.get(f"{API}/events/{event_id}/analytics", headers=headers(alice))
        assert forbidden.status_code == 403

    async def test_rejection_returns_pair_to_pending(self, client, admin, students, headers, make_event, window):
        event = await make_event(participants=students[:2], start_date=window["start"], end_date=window["end"])
        pairs = (await client.post(f"{API}/events/{event.id}/pairs/generate", headers=headers(admin))).json()
        pair = pairs["pairs"][0]
        interviewee = next(s for s in students if s.id == pair["interviewee"]["id"])
        interviewer = next(s for s in students if s.id == pair["interviewer"]["id"])
        pair_url = f"{API}/pairs/{pair['id']}"

        await client.post(f"{pair_url}/proposals", json={"slots": [_iso(window["slot"])]}, headers=headers(interviewer))

        wrong_side = await client.post(f"{pair_url}/reject", json={}, headers=headers(interviewer))
        assert wrong_side.status_code == 403

        rejected = await client.post(
            f"{pair_url}/reject", json={"reason": "Exam that day"}, headers=headers(interviewee)
        )
        assert rejected.json()["status"] == "rejected"
        assert rejected.json()["rejection_count"] == 1

        again = await client.post(f"{pair_url}/reject", json={}, headers=headers(interviewee))
        assert again.status_code == 429
        assert again.json()["error"]["code"] == "COOLDOWN"

        proposals = (await client.get(f"{pair_url}/proposals", headers=headers(interviewee))).json()
        assert proposals["mine"] == [] and proposals["partner"] == []

        await client.post(f"{pair_url}/proposals", json={"slots": [_iso(window["slot"])]}, headers=headers(interviewer))
        listed = (await client.get(f"{API}/events/{event.id}/pairs", headers=headers(admin))).json()
        assert next(p for p in listed if p["id"] == pair["id"])["status"] == "pending"


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.json() == {"status": "ready"}

    async def test_unknown_route_envelope(self, client):
        response = await client.get(f"{API}/nowhere")
        assert response.status_code == 404
        assert response.json()["error"]["path"] == f"{API}/nowhere"
