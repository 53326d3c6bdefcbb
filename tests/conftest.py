"""
Shared fixtures: in-memory persistence and fake collaborators wired through
the same service container the API uses.
"""

import os
from typing import Any, AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

# Configure test environment BEFORE importing the app
os.environ["APP_ENV"] = "test"
os.environ["MONGODB_URI"] = "disabled"
os.environ["GROQ_API_KEY"] = "disabled"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_DIR"] = os.path.join(os.path.dirname(__file__), ".logs")

from igire.api.deps import Services, build_services, get_services
from igire.api.main import app
from igire.domain.models import UserRole
from igire.infra.repositories import InMemoryRepository
from igire.infra.sms_adapter import SmsSendResult
from igire.infra.transcription_adapter import Transcript


class FakeLLM:
    def __init__(self, responses: list[Any] | None = None, enabled: bool = True) -> None:
        self.responses = list(responses or [])
        self._enabled = enabled
        self.calls: list[tuple[str, str]] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    def chat_json(self, system_prompt: str, user_text: str) -> Any | None:
        self.calls.append((system_prompt, user_text))
        return self.responses.pop(0) if self.responses else None


class FakeTranscriber:
    def __init__(self, text: str = "amazi ntaboneka kw'iminsi 3", language: str = "rw") -> None:
        self.text = text
        self.language = language
        self.error: Exception | None = None
        self.calls: list[Any] = []

    def _result(self, source: Any) -> Transcript:
        self.calls.append(source)
        if self.error:
            raise self.error
        return Transcript(text=self.text, language=self.language)

    def transcribe_bytes(self, data: bytes) -> Transcript:
        return self._result(data)

    def transcribe_url(self, audio_url: str) -> Transcript:
        return self._result(audio_url)


class FakeStorage:
    def __init__(self) -> None:
        self.uploads: list[tuple[str, str, bytes]] = []

    def upload(self, kind: str, file_name: str, data: bytes, content_type: str | None = None) -> str:
        self.uploads.append((kind, file_name, data))
        return f"https://storage.test/{kind}/{file_name}"


class FakeSmsGateway:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: list[tuple[str, str]] = []

    def configured(self) -> bool:
        return True

    def send(self, to: str, text: str) -> SmsSendResult:
        self.sent.append((to, text))
        return SmsSendResult(ok=self.ok, detail="sent" if self.ok else "http_error:500:gateway down")


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM(enabled=False)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def sms_gateway() -> FakeSmsGateway:
    return FakeSmsGateway()


@pytest.fixture
def services(llm, transcriber, storage, sms_gateway) -> Services:
    return build_services(
        InMemoryRepository(),
        llm=llm,
        transcriber=transcriber,
        storage=storage,
        sms_gateway=sms_gateway,
    )


@pytest.fixture
def make_user(services):
    """Create an account directly and return (user, bearer headers)."""

    def _make(
        *,
        name: str = "Jean Uwase",
        email: str | None = None,
        phone: str | None = None,
        password: str = "password123",
        role: str = UserRole.USER.value,
        points: int = 0,
    ) -> tuple[dict[str, Any], dict[str, str]]:
        user = services.auth.create_account(
            name=name,
            email=email,
            phone=phone,
            password=password,
            role=role,
        )
        if points:
            services.repo.update_user(user["id"], {"points": points})
        token = services.auth.create_token(user)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    """Async test client bound to the fixture services."""
    app.dependency_overrides[get_services] = lambda: services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
