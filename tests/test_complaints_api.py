"""
Tests for complaint intake, listing and status updates over HTTP.
"""
import pytest

from igire.domain.models import POINTS_PER_COMPLAINT
from igire.infra.transcription_adapter import TranscriptionTimeout

LOCATION = {"district": "Gasabo", "sector": "Kimironko", "cell": "Bibare", "village": "Urugwiro"}


async def _submit(client, headers=None, **overrides):
    payload = {"description": "amazi ntaboneka kw'iminsi 3", **LOCATION, **overrides}
    return await client.post("/api/complaints", json=payload, headers=headers or {})


class TestWebSubmission:
    @pytest.mark.asyncio
    async def test_submit_uses_keyword_fallback(self, client):
        response = await _submit(client)
        assert response.status_code == 200
        body = response.json()
        assert body["id"].startswith("C")
        assert body["category"] == "water"
        assert body["ai_category"] == "water"
        assert body["ai_confidence"] == 67
        assert body["status"] == "submitted"
        assert body["points_awarded"] == POINTS_PER_COMPLAINT
        assert body["suggested_agency"] == "Not Found"
        assert body["assigned_agency"] is None

    @pytest.mark.asyncio
    async def test_explicit_category_overrides_ai(self, client):
        body = (await _submit(client, category="roads")).json()
        assert body["category"] == "roads"
        assert body["ai_category"] == "water"

    @pytest.mark.asyncio
    async def test_authenticated_submitter_earns_points(self, client, services, make_user):
        user, headers = make_user(email="citizen@example.rw")
        await _submit(client, headers)
        await _submit(client, headers)
        assert services.repo.get_user(user["id"])["points"] == 2 * POINTS_PER_COMPLAINT

    @pytest.mark.asyncio
    async def test_anonymous_phone_number_earns_nobody_points(self, client, services, make_user):
        owner, _ = make_user(phone="+250788444000")
        for _ in range(3):
            response = await _submit(client, phoneNumber="+250788444000")
            assert response.status_code == 200
        assert services.repo.get_user(owner["id"])["points"] == 0
        assert [c["phone_number"] for c in services.repo.list_complaints()] == ["+250788444000"] * 3

    @pytest.mark.asyncio
    async def test_authenticated_submitter_is_credited_not_phone_owner(self, client, services, make_user):
        owner, _ = make_user(phone="+250788444001")
        submitter, headers = make_user(email="s@example.rw")
        await _submit(client, headers, phoneNumber="+250788444001")
        assert services.repo.get_user(owner["id"])["points"] == 0
        assert services.repo.get_user(submitter["id"])["points"] == POINTS_PER_COMPLAINT

    @pytest.mark.asyncio
    async def test_enrichment_defaults_without_llm(self, client):
        body = (await _submit(client)).json()
        assert body["translated_description"] == "amazi ntaboneka kw'iminsi 3"
        assert body["effects"] == []
        assert body["consequences"] == []
        assert body["severity"] == "medium"
        assert body["suggested_actions"] == []

    @pytest.mark.asyncio
    async def test_enrichment_is_stored_and_listed(self, client, llm):
        llm._enabled = True
        llm.responses.extend(
            [
                {"category": "water", "confidence": 91, "suggestedAgency": "WASAC"},
                {
                    "translatedDescription": "No water for 3 days",
                    "effects": ["Households buy water from vendors"],
                    "consequences": ["Waterborne disease"],
                    "severity": "HIGH",
                    "suggestedActions": ["Send a water truck"],
                },
            ]
        )
        created = (await _submit(client)).json()
        assert created["ai_confidence"] == 91
        assert created["description"] == "amazi ntaboneka kw'iminsi 3"
        assert created["translated_description"] == "No water for 3 days"
        assert created["severity"] == "high"

        [listed] = (await client.get("/api/complaints")).json()
        assert listed["effects"] == ["Households buy water from vendors"]
        assert listed["consequences"] == ["Waterborne disease"]
        assert listed["suggested_actions"] == ["Send a water truck"]
        assert len(llm.calls) == 2

    @pytest.mark.asyncio
    async def test_routes_to_department_institution(self, client, services):
        services.repo.create_institution(
            {"id": "INST1", "name": "WASAC", "department": "water", "role": "institution"}
        )
        body = (await _submit(client)).json()
        assert body["assigned_agency"] == "WASAC"

    @pytest.mark.asyncio
    async def test_missing_location_is_rejected(self, client):
        response = await client.post("/api/complaints", json={"description": "Pothole", "district": "Gasabo"})
        assert response.status_code == 400
        assert "sector" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_missing_description_is_rejected(self, client):
        response = await client.post("/api/complaints", json={"description": "  ", **LOCATION})
        assert response.status_code == 400


class TestMediaSubmission:
    @pytest.mark.asyncio
    async def test_audio_upload_is_transcribed(self, client, services, storage, make_user):
        user, headers = make_user(email="voice@example.rw")
        response = await client.post(
            "/api/complaints/audio",
            data=LOCATION,
            files={"audio": ("note.webm", b"fake-audio", "audio/webm")},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["description"] == "amazi ntaboneka kw'iminsi 3"
        assert body["language"] == "rw"
        assert body["submission_method"] == "voice"
        assert body["audio_url"] == "https://storage.test/audio/note.webm"
        assert storage.uploads[0][2] == b"fake-audio"
        assert services.repo.get_user(user["id"])["points"] == POINTS_PER_COMPLAINT

    @pytest.mark.asyncio
    async def test_audio_requires_authentication(self, client):
        response = await client.post(
            "/api/complaints/audio", data=LOCATION, files={"audio": ("note.webm", b"x", "audio/webm")}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_transcription_timeout_fails_submission(self, client, services, transcriber, make_user):
        _, headers = make_user(email="slow@example.rw")
        transcriber.error = TranscriptionTimeout("Transcription timeout")
        response = await client.post(
            "/api/complaints/audio",
            data=LOCATION,
            files={"audio": ("note.webm", b"fake-audio", "audio/webm")},
            headers=headers,
        )
        assert response.status_code == 500
        assert response.json()["error"] == "Transcription timeout"
        assert services.repo.list_complaints() == []

    @pytest.mark.asyncio
    async def test_video_with_description_skips_transcription(self, client, transcriber, make_user):
        _, headers = make_user(email="video@example.rw")
        response = await client.post(
            "/api/complaints/video",
            data={**LOCATION, "description": "Street light broken", "coordinates": "-1.95,30.06"},
            files={"video": ("clip.mp4", b"fake-video", "video/mp4")},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["submission_method"] == "video"
        assert body["category"] == "roads"
        assert body["video_url"] == "https://storage.test/video/clip.mp4"
        assert body["coordinates"] == {"latitude": -1.95, "longitude": 30.06}
        assert transcriber.calls == []

    @pytest.mark.asyncio
    async def test_voice_webhook(self, client, services, make_user):
        user, _ = make_user(phone="+250788555000")
        response = await client.post(
            "/api/voice",
            json={"phoneNumber": "+250788555000", "recordingUrl": "https://voice.test/rec.mp3"},
        )
        assert response.status_code == 200
        assert response.json()["phone_number"] == "+250788555000"
        assert services.repo.get_user(user["id"])["points"] == POINTS_PER_COMPLAINT


class TestListingAndTracking:
    @pytest.mark.asyncio
    async def test_list_and_get(self, client):
        created = (await _submit(client)).json()
        listed = (await client.get("/api/complaints")).json()
        assert [c["id"] for c in listed] == [created["id"]]
        fetched = await client.get(f"/api/complaints/{created['id']}")
        assert fetched.json()["id"] == created["id"]

    @pytest.mark.asyncio
    async def test_get_unknown_returns_404(self, client):
        response = await client.get("/api/complaints/CNOPE")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_joined_requires_staff(self, client, make_user):
        _, citizen = make_user(email="c1@example.rw")
        _, admin = make_user(email="admin1@example.rw", role="admin")
        await _submit(client, citizen)
        assert (await client.get("/api/complaints/joined", headers=citizen)).status_code == 403
        joined = (await client.get("/api/complaints/joined", headers=admin)).json()
        assert joined[0]["user"]["email"] == "c1@example.rw"

    @pytest.mark.asyncio
    async def test_track_own_complaints(self, client, make_user):
        user, headers = make_user(email="t@example.rw")
        await _submit(client, headers)
        response = await client.get("/api/track", headers=headers)
        [summary] = response.json()
        assert summary["location"] == "Urugwiro, Bibare, Kimironko, Gasabo"
        assert summary["pointsAwarded"] == POINTS_PER_COMPLAINT
        by_id = await client.get("/api/track/user", params={"userId": user["id"]})
        assert [s["id"] for s in by_id.json()] == [summary["id"]]

    @pytest.mark.asyncio
    async def test_track_user_without_id(self, client):
        assert (await client.get("/api/track/user")).status_code == 401


class TestStatusUpdates:
    @pytest.mark.asyncio
    async def test_empty_patch_is_rejected(self, client, make_user):
        _, headers = make_user(email="officer@example.rw")
        created = (await _submit(client)).json()
        response = await client.patch(f"/api/complaints/{created['id']}", json={}, headers=headers)
        assert response.status_code == 400
        assert response.json() == {"error": "No valid fields to update"}

    @pytest.mark.asyncio
    async def test_linear_lifecycle(self, client, services, make_user):
        _, headers = make_user(email="officer2@example.rw")
        cid = (await _submit(client)).json()["id"]

        skip = await client.patch(f"/api/complaints/{cid}", json={"status": "resolved"}, headers=headers)
        assert skip.status_code == 400

        ok = await client.patch(f"/api/complaints/{cid}", json={"status": "in-progress"}, headers=headers)
        assert ok.status_code == 200
        assert ok.json()["updated"] == {"status": "in-progress"}

        done = await client.patch(f"/api/complaints/{cid}", json={"status": "resolved"}, headers=headers)
        assert done.json()["complaint"]["resolved_at"]

        reopen = await client.patch(f"/api/complaints/{cid}", json={"status": "submitted"}, headers=headers)
        assert reopen.status_code == 400
        assert services.repo.get_complaint(cid)["status"] == "resolved"

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, client, make_user):
        _, headers = make_user(email="officer3@example.rw")
        cid = (await _submit(client)).json()["id"]
        response = await client.patch(f"/api/complaints/{cid}", json={"status": "submitted"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["updated"] == {}

    @pytest.mark.asyncio
    async def test_assign_agency(self, client, make_user):
        _, headers = make_user(email="officer4@example.rw")
        cid = (await _submit(client)).json()["id"]
        response = await client.patch(f"/api/complaints/{cid}", json={"assignedAgency": "WASAC"}, headers=headers)
        assert response.json()["complaint"]["assigned_agency"] == "WASAC"

    @pytest.mark.asyncio
    async def test_unknown_complaint(self, client, make_user):
        _, headers = make_user(email="officer5@example.rw")
        response = await client.patch("/api/complaints/CNOPE", json={"status": "in-progress"}, headers=headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client):
        response = await client.patch("/api/complaints/C1", json={"status": "in-progress"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_status_change_notifies_phone_submitter(self, client, services, sms_gateway, make_user):
        _, headers = make_user(email="officer6@example.rw")
        services.ussd.handle("s", "+250788999000", "1*4*Huye*Amashanyarazi yabuze")
        cid = services.repo.list_complaints()[0]["id"]
        await client.patch(f"/api/complaints/{cid}", json={"status": "in-progress"}, headers=headers)
        assert sms_gateway.sent[-1][0] == "+250788999000"
        assert cid in sms_gateway.sent[-1][1]
