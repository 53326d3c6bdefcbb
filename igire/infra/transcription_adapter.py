from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import requests

from igire.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transcript:
    text: str
    language: str


class TranscriptionError(RuntimeError):
    pass


class TranscriptionTimeout(TranscriptionError):
    pass


class AssemblyAIAdapter:
    """Upload, start a transcript with language detection, then poll until it settles."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        poll_seconds: float | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_key = settings.assemblyai_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.assemblyai_base_url).rstrip("/")
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.transcription_timeout_seconds
        self.poll_seconds = poll_seconds if poll_seconds is not None else settings.transcription_poll_seconds
        self.session = session or requests.Session()
        self._sleep = sleep
        self._clock = clock

    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self, content_type: str | None = None) -> dict[str, str]:
        headers = {"Authorization": self.api_key}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _json(self, res: requests.Response, action: str) -> dict[str, Any]:
        if res.status_code >= 400:
            raise TranscriptionError(f"{action} failed: {res.status_code} {res.text[:200]}")
        try:
            return res.json()
        except ValueError as exc:
            raise TranscriptionError(f"{action} returned invalid JSON") from exc

    def upload(self, data: bytes) -> str:
        try:
            res = self.session.post(
                f"{self.base_url}/upload",
                headers=self._headers("application/octet-stream"),
                data=data,
                timeout=60,
            )
        except requests.RequestException as exc:
            raise TranscriptionError(f"Upload failed: {exc}") from exc
        upload_url = self._json(res, "Upload").get("upload_url")
        if not upload_url:
            raise TranscriptionError("No upload URL received")
        return str(upload_url)

    def transcribe_bytes(self, data: bytes) -> Transcript:
        if not self.configured():
            raise TranscriptionError("ASSEMBLYAI_API_KEY missing")
        if not data:
            raise TranscriptionError("Audio payload is empty")
        return self.transcribe_url(self.upload(data))

    def transcribe_url(self, audio_url: str) -> Transcript:
        if not self.configured():
            raise TranscriptionError("ASSEMBLYAI_API_KEY missing")
        try:
            res = self.session.post(
                f"{self.base_url}/transcript",
                headers=self._headers("application/json"),
                json={"audio_url": audio_url, "language_detection": True},
                timeout=30,
            )
        except requests.RequestException as exc:
            raise TranscriptionError(f"Transcription request failed: {exc}") from exc
        transcript_id = self._json(res, "Transcription").get("id")
        if not transcript_id:
            raise TranscriptionError("No transcript ID received")
        return self._poll(str(transcript_id))

    def _poll(self, transcript_id: str) -> Transcript:
        started = self._clock()
        while self._clock() - started < self.timeout_seconds:
            try:
                res = self.session.get(
                    f"{self.base_url}/transcript/{transcript_id}",
                    headers=self._headers(),
                    timeout=30,
                )
            except requests.RequestException as exc:
                raise TranscriptionError(f"Transcription poll failed: {exc}") from exc
            body = self._json(res, "Transcription poll")
            status = body.get("status")
            if status == "completed":
                return Transcript(text=str(body.get("text") or ""), language=str(body.get("language_code") or "en"))
            if status == "error":
                raise TranscriptionError(str(body.get("error") or "Transcription failed"))
            self._sleep(self.poll_seconds)

        logger.warning("Transcript %s did not complete within %ss", transcript_id, self.timeout_seconds)
        raise TranscriptionTimeout("Transcription timeout")
