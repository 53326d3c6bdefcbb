"""
Tests for SMS intake parsing and the gateway endpoints.
"""
import pytest

from igire.domain.models import Category
from igire.infra.sms_adapter import PindoSmsAdapter, SmsSendResult
from igire.services.sms_service import SMS_USAGE, SmsFormatError, parse_sms


class TestParseSms:
    def test_valid_message(self):
        parsed = parse_sms("igire Water Gasabo No water since Monday morning")
        assert parsed.category == Category.WATER
        assert parsed.location == "Gasabo"
        assert parsed.description == "No water since Monday morning"

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "HELLO water Gasabo no water",
            "IGIRE water Gasabo",
            "IGIRE parking Gasabo cars everywhere",
        ],
    )
    def test_malformed_messages(self, text):
        with pytest.raises(SmsFormatError):
            parse_sms(text)


class TestInboundSmsEndpoint:
    @pytest.mark.asyncio
    async def test_inbound_creates_complaint_and_replies(self, client, services, sms_gateway):
        response = await client.post(
            "/api/sms/inbound",
            json={"from": "+250788000111", "text": "IGIRE roads Kicukiro Pothole on KK 15 Ave"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["category"] == "roads"
        assert body["submission_method"] == "sms"
        assert body["district"] == "Kicukiro"
        assert sms_gateway.sent[-1][0] == "+250788000111"
        assert body["id"] in sms_gateway.sent[-1][1]

    @pytest.mark.asyncio
    async def test_malformed_inbound_returns_400_and_usage(self, client, services, sms_gateway):
        response = await client.post("/api/sms/inbound", json={"from": "+250788000111", "text": "hello"})
        assert response.status_code == 400
        assert "error" in response.json()
        assert sms_gateway.sent == [("+250788000111", SMS_USAGE)]
        assert services.repo.list_complaints() == []


class TestSendSmsEndpoint:
    @pytest.mark.asyncio
    async def test_send_sms(self, client, sms_gateway):
        response = await client.post("/api/send-sms", json={"to": "+250788000222", "text": "Muraho"})
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert sms_gateway.sent == [("+250788000222", "Muraho")]

    @pytest.mark.asyncio
    async def test_gateway_failure_returns_500(self, client, sms_gateway):
        sms_gateway.ok = False
        response = await client.post("/api/send-sms", json={"to": "+250788000222", "text": "Muraho"})
        assert response.status_code == 500
        assert "gateway down" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_missing_fields(self, client):
        response = await client.post("/api/send-sms", json={"to": "", "text": ""})
        assert response.status_code == 400


class StubResponse:
    def __init__(self, status_code: int, payload: dict) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self) -> dict:
        return self._payload


class StubSession:
    def __init__(self, response: StubResponse) -> None:
        self.response = response
        self.calls: list[tuple[str, dict]] = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


class TestPindoAdapter:
    def test_posts_bearer_request(self):
        session = StubSession(StubResponse(201, {"sms_id": 1}))
        adapter = PindoSmsAdapter("key", sender="IGIRE", base_url="https://api.pindo.test/v1", session=session)
        assert adapter.send("+250788000333", "Muraho").ok
        url, kwargs = session.calls[0]
        assert url == "https://api.pindo.test/v1/sms/"
        assert kwargs["headers"]["Authorization"] == "Bearer key"
        assert kwargs["json"] == {"to": "+250788000333", "text": "Muraho", "sender": "IGIRE"}

    def test_reports_gateway_error(self):
        session = StubSession(StubResponse(401, {"message": "invalid token"}))
        result = PindoSmsAdapter("key", session=session).send("+250788000333", "Muraho")
        assert not result.ok
        assert "invalid token" in result.detail

    def test_missing_key_does_not_call_gateway(self):
        session = StubSession(StubResponse(201, {}))
        result = PindoSmsAdapter("", session=session).send("+250788000333", "Muraho")
        assert result == SmsSendResult(ok=False, detail="PINDO_API_KEY missing")
        assert session.calls == []
