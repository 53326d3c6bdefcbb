from __future__ import annotations

import logging
from typing import Any

from igire.contracts.payloads import ComplaintUpdateRequest, WebComplaintRequest
from igire.domain.models import POINTS_PER_COMPLAINT, Category, Channel, Complaint, normalize_phone, utc_now
from igire.domain.state_machine import StatusMachine
from igire.domain.states import ComplaintStatus
from igire.events.bus import InMemoryEventBus
from igire.infra.media_storage import SupabaseMediaStorage
from igire.infra.repositories import Repository
from igire.infra.transcription_adapter import AssemblyAIAdapter, TranscriptionError
from igire.services.categorization import NOT_FOUND, CategorizationService
from igire.services.enrichment import EnrichmentService
from igire.services.errors import NotFoundError

logger = logging.getLogger(__name__)

LOCATION_FIELDS = ("district", "sector", "cell", "village")

# Caller ids on these channels come from the carrier, not from user input.
CARRIER_CHANNELS = frozenset({Channel.SMS, Channel.USSD, Channel.VOICE})


def require_location(location: dict[str, Any]) -> dict[str, str]:
    cleaned = {key: str(location.get(key) or "").strip() for key in LOCATION_FIELDS}
    missing = [key for key, value in cleaned.items() if not value]
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")
    return cleaned


def location_label(row: dict[str, Any]) -> str:
    return ", ".join(str(row[k]) for k in ("village", "cell", "sector", "district") if row.get(k))


def complaint_summary(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row.get("id"),
        "description": row.get("description"),
        "category": row.get("category"),
        "location": location_label(row),
        "status": row.get("status"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
        "audioUrl": row.get("audio_url"),
        "videoUrl": row.get("video_url"),
        "pointsAwarded": row.get("points_awarded", POINTS_PER_COMPLAINT),
        "assignedAgency": row.get("assigned_agency"),
    }


class ComplaintService:
    def __init__(
        self,
        repo: Repository,
        categorizer: CategorizationService,
        enricher: EnrichmentService,
        transcriber: AssemblyAIAdapter,
        storage: SupabaseMediaStorage,
        bus: InMemoryEventBus,
    ) -> None:
        self.repo = repo
        self.categorizer = categorizer
        self.enricher = enricher
        self.transcriber = transcriber
        self.storage = storage
        self.bus = bus
        self.status_machine = StatusMachine()

    # intake

    def submit(
        self,
        *,
        description: str,
        channel: Channel,
        location: dict[str, Any],
        category: str | None = None,
        user_id: str | None = None,
        phone_number: str | None = None,
        coordinates: dict[str, float] | None = None,
        language: str | None = None,
        audio_url: str | None = None,
        video_url: str | None = None,
    ) -> dict[str, Any]:
        text = str(description or "").strip()
        if not text:
            raise ValueError("Description is required")

        prediction = self.categorizer.categorize(text)
        chosen = str(category or "").strip().lower()
        final_category = chosen if chosen in {c.value for c in Category} else prediction.category
        enrichment = self.enricher.enrich(text, final_category, language)

        complaint = Complaint(
            description=text,
            category=final_category,
            submission_method=channel.value,
            district=str(location.get("district") or ""),
            sector=str(location.get("sector") or ""),
            cell=str(location.get("cell") or ""),
            village=str(location.get("village") or ""),
            user_id=user_id,
            phone_number=phone_number,
            coordinates=coordinates,
            ai_category=prediction.category,
            ai_confidence=prediction.confidence,
            suggested_agency=prediction.suggested_agency,
            assigned_agency=None if prediction.suggested_agency == NOT_FOUND else prediction.suggested_agency,
            language=language,
            audio_url=audio_url,
            video_url=video_url,
            translated_description=enrichment.translated_description,
            effects=enrichment.effects,
            consequences=enrichment.consequences,
            severity=enrichment.severity,
            suggested_actions=enrichment.suggested_actions,
        )
        row = self.repo.create_complaint(complaint.to_row())
        credited = self._credit_submitter(user_id, phone_number if channel in CARRIER_CHANNELS else None)
        logger.info(
            "Complaint %s submitted via %s (category=%s, source=%s, severity=%s, credited=%s)",
            row["id"], channel.value, final_category, prediction.source, enrichment.severity, credited,
        )
        self.bus.emit(
            "complaint.submitted",
            subject_id=row["id"],
            actor_id=credited,
            payload={
                "category": final_category,
                "submission_method": channel.value,
                "points_awarded": POINTS_PER_COMPLAINT,
                "phone_number": phone_number,
            },
        )
        return row

    def _credit_submitter(self, user_id: str | None, phone_number: str | None) -> str | None:
        target = user_id
        if not target and phone_number:
            user = self.repo.find_user_by_phone(normalize_phone(phone_number) or "")
            target = user["id"] if user else None
        if not target:
            return None
        updated = self.repo.increment_points(target, POINTS_PER_COMPLAINT)
        if updated is None:
            return None
        self.repo.update_user(target, {"last_activity": utc_now()})
        return target

    def submit_web(self, payload: WebComplaintRequest, user_id: str | None) -> dict[str, Any]:
        if not payload.description.strip():
            raise ValueError("Description is required")
        location = require_location(payload.model_dump())
        return self.submit(
            description=payload.description,
            channel=Channel.WEB,
            location=location,
            category=payload.category,
            user_id=user_id,
            phone_number=payload.phone_number,
            coordinates=payload.coordinates.model_dump() if payload.coordinates else None,
        )

    def submit_audio(
        self,
        *,
        file_name: str,
        data: bytes,
        content_type: str | None,
        location: dict[str, Any],
        user_id: str,
    ) -> dict[str, Any]:
        cleaned = require_location(location)
        if not data:
            raise ValueError("No audio file provided")
        audio_url = self.storage.upload("audio", file_name, data, content_type)
        transcript = self.transcriber.transcribe_bytes(data)
        if not transcript.text.strip():
            raise TranscriptionError("Transcription returned empty text")
        return self.submit(
            description=transcript.text,
            channel=Channel.VOICE,
            location=cleaned,
            user_id=user_id,
            language=transcript.language,
            audio_url=audio_url,
        )

    def submit_video(
        self,
        *,
        file_name: str,
        data: bytes,
        content_type: str | None,
        location: dict[str, Any],
        user_id: str,
        description: str = "",
        category: str | None = None,
        coordinates: dict[str, float] | None = None,
    ) -> dict[str, Any]:
        cleaned = require_location(location)
        if not data:
            raise ValueError("No video file provided")
        video_url = self.storage.upload("video", file_name, data, content_type)
        language = None
        text = str(description or "").strip()
        if not text:
            transcript = self.transcriber.transcribe_bytes(data)
            text, language = transcript.text.strip(), transcript.language
            if not text:
                raise TranscriptionError("Transcription returned empty text")
        return self.submit(
            description=text,
            channel=Channel.VIDEO,
            location=cleaned,
            category=category,
            user_id=user_id,
            coordinates=coordinates,
            language=language,
            video_url=video_url,
        )

    def submit_voice_call(self, phone_number: str, recording_url: str, language: str | None = None) -> dict[str, Any]:
        if not phone_number.strip() or not recording_url.strip():
            raise ValueError("phoneNumber and recordingUrl are required")
        transcript = self.transcriber.transcribe_url(recording_url)
        if not transcript.text.strip():
            raise TranscriptionError("Transcription returned empty text")
        return self.submit(
            description=transcript.text,
            channel=Channel.VOICE,
            location={},
            phone_number=phone_number.strip(),
            language=language or transcript.language,
            audio_url=recording_url,
        )

    # reads

    def get(self, complaint_id: str) -> dict[str, Any]:
        row = self.repo.get_complaint(complaint_id)
        if row is None:
            raise NotFoundError("Complaint not found")
        return row

    def list_all(self) -> list[dict[str, Any]]:
        return self.repo.list_complaints()

    def list_joined(self) -> list[dict[str, Any]]:
        users: dict[str, dict[str, Any] | None] = {}
        out = []
        for row in self.repo.list_complaints():
            uid = row.get("user_id")
            if uid and uid not in users:
                users[uid] = self.repo.get_user(uid)
            user = users.get(uid) if uid else None
            out.append(
                {
                    **row,
                    "user": {
                        "name": user.get("name"),
                        "email": user.get("email"),
                        "phone": user.get("phone"),
                    }
                    if user
                    else None,
                }
            )
        return out

    def track_for_user(self, user_id: str) -> list[dict[str, Any]]:
        return [complaint_summary(r) for r in self.repo.list_complaints_by_user(user_id)]

    # updates

    def update(self, complaint_id: str, payload: ComplaintUpdateRequest, actor_id: str | None) -> dict[str, Any]:
        requested: dict[str, Any] = {}
        if payload.status:
            requested["status"] = payload.status
        if payload.assigned_agency:
            requested["assigned_agency"] = payload.assigned_agency.strip()
        if not requested:
            raise ValueError("No valid fields to update")

        current = self.get(complaint_id)
        updates: dict[str, Any] = {}
        previous = self.status_machine.parse(current.get("status") or ComplaintStatus.SUBMITTED.value)

        if "status" in requested:
            target = self.status_machine.parse(requested["status"])
            if target != previous:
                self.status_machine.transition(previous, target)
                updates["status"] = target.value
                if target == ComplaintStatus.RESOLVED:
                    updates["resolved_at"] = utc_now()

        if "assigned_agency" in requested:
            updates["assigned_agency"] = requested["assigned_agency"]

        row = self.repo.update_complaint(complaint_id, updates) if updates else current
        if row is None:
            raise NotFoundError("Complaint not found")

        if "status" in updates:
            logger.info("Complaint %s status %s -> %s", complaint_id, previous.value, updates["status"])
            self.bus.emit(
                "complaint.status.changed",
                subject_id=complaint_id,
                actor_id=actor_id,
                payload={
                    "from_status": previous.value,
                    "to_status": updates["status"],
                    "phone_number": row.get("phone_number"),
                    "user_id": row.get("user_id"),
                },
            )
        if "assigned_agency" in updates:
            self.bus.emit(
                "complaint.assigned",
                subject_id=complaint_id,
                actor_id=actor_id,
                payload={"assigned_agency": updates["assigned_agency"]},
            )
        return {"success": True, "updated": updates, "complaint": row}
