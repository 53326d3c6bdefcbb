from __future__ import annotations

import logging
from typing import Any

from igire.contracts.payloads import InstitutionCreateRequest, InstitutionUpdateRequest
from igire.domain.models import Category, Institution, UserRole
from igire.events.bus import InMemoryEventBus
from igire.infra.repositories import Repository
from igire.services.auth_service import AuthService, generate_temp_password
from igire.services.errors import NotFoundError
from igire.services.institution_cache import InstitutionCache
from igire.services.sms_service import SmsService

logger = logging.getLogger(__name__)

STAFF_ROLES = frozenset({UserRole.INSTITUTION.value, UserRole.ADMIN.value})


class InstitutionService:
    def __init__(
        self,
        repo: Repository,
        auth: AuthService,
        cache: InstitutionCache,
        sms: SmsService,
        bus: InMemoryEventBus,
    ) -> None:
        self.repo = repo
        self.auth = auth
        self.cache = cache
        self.sms = sms
        self.bus = bus

    def list_public(self) -> list[dict[str, Any]]:
        return [
            {"id": r.get("id"), "name": r.get("name"), "department": r.get("department")}
            for r in self.repo.list_institutions(role=UserRole.INSTITUTION.value)
        ]

    def create(self, payload: InstitutionCreateRequest, actor_id: str | None) -> dict[str, Any]:
        name, email = payload.name.strip(), payload.email.strip().lower()
        department = payload.department.strip().lower()
        role = str(payload.role or UserRole.INSTITUTION.value).strip().lower()
        if not name or not email or not department:
            raise ValueError("name, email and department are required")
        if role not in STAFF_ROLES:
            raise ValueError(f"role must be one of: {', '.join(sorted(STAFF_ROLES))}")
        if department not in {c.value for c in Category}:
            logger.warning("Institution %s uses department '%s' outside the category list", name, department)
        if self.repo.find_institution_by_email(email) or self.repo.find_user_by_email(email):
            raise ValueError("Email already in use")

        temp_password = generate_temp_password()
        staff = self.auth.create_account(
            name=name,
            email=email,
            phone=payload.phone,
            password=temp_password,
            role=role,
            department=department,
        )
        institution = Institution(
            name=name,
            department=department,
            email=email,
            phone=(payload.phone or "").strip() or None,
            role=role,
            staff_user_id=staff["id"],
        )
        row = self.repo.create_institution(institution.to_row())
        self.cache.invalidate()

        sms_sent = self.sms.notify(
            institution.phone,
            f"Welcome to Igire Citizen Hub. Login: {email} Temporary password: {temp_password}",
        )
        self.bus.emit("institution.changed", subject_id=row["id"], actor_id=actor_id, payload={"action": "created"})
        logger.info("Institution %s created (sms_sent=%s)", row["id"], sms_sent)
        return {
            **row,
            "institutionId": row["id"],
            "userId": staff["id"],
            "temporaryPassword": temp_password,
            "smsSent": sms_sent,
        }

    def update(self, institution_id: str, payload: InstitutionUpdateRequest, actor_id: str | None) -> dict[str, Any]:
        updates = {k: v.strip() for k, v in payload.model_dump().items() if isinstance(v, str) and v.strip()}
        if "department" in updates:
            updates["department"] = updates["department"].lower()
        if "email" in updates:
            updates["email"] = updates["email"].lower()
        if not updates:
            raise ValueError("No valid fields to update")

        row = self.repo.update_institution(institution_id, updates)
        if row is None:
            raise NotFoundError("Institution not found")
        if row.get("staff_user_id"):
            staff_updates = {k: v for k, v in updates.items() if k in {"department", "email", "phone", "name"}}
            self.repo.update_user(row["staff_user_id"], staff_updates)
        self.cache.invalidate()
        self.bus.emit("institution.changed", subject_id=institution_id, actor_id=actor_id, payload={"action": "updated"})
        return {"success": True, "institution": row}

    def delete(self, institution_id: str, actor_id: str | None) -> dict[str, Any]:
        if not self.repo.delete_institution(institution_id):
            raise NotFoundError("Institution not found")
        self.cache.invalidate()
        self.bus.emit("institution.changed", subject_id=institution_id, actor_id=actor_id, payload={"action": "deleted"})
        return {"success": True}
