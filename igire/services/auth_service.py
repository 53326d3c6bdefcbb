from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from igire.config import settings
from igire.contracts.payloads import (
    ChangePasswordRequest,
    CreateUserRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from igire.domain.models import User, UserRole, normalize_phone, public_user, utc_now
from igire.infra.repositories import Repository
from igire.services.errors import AuthError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_temp_password() -> str:
    return secrets.token_urlsafe(9)


def _clean_email(value: str | None) -> str | None:
    email = str(value or "").strip().lower()
    return email or None


def _clean_phone(value: str | None) -> str | None:
    return normalize_phone(value)


class AuthService:
    def __init__(self, repo: Repository, secret: str | None = None, expire_days: int | None = None) -> None:
        self.repo = repo
        self.secret = secret or settings.jwt_secret
        self.expire_days = expire_days or settings.jwt_expire_days

    # tokens

    def create_token(self, user: dict[str, Any]) -> str:
        expires = datetime.now(timezone.utc) + timedelta(days=self.expire_days)
        claims = {
            "sub": user["id"],
            "email": user.get("email"),
            "phone": user.get("phone"),
            "role": user.get("role", UserRole.USER.value),
            "exp": expires,
        }
        return jwt.encode(claims, self.secret, algorithm=JWT_ALGORITHM)

    def user_from_token(self, token: str | None) -> dict[str, Any]:
        if not token:
            raise AuthError("Not authenticated")
        try:
            claims = jwt.decode(token, self.secret, algorithms=[JWT_ALGORITHM])
        except JWTError as exc:
            raise AuthError("Invalid or expired token") from exc
        user = self.repo.get_user(str(claims.get("sub") or ""))
        if user is None:
            raise AuthError("User no longer exists")
        return user

    # accounts

    def create_account(
        self,
        *,
        name: str,
        email: str | None,
        phone: str | None,
        password: str,
        role: str = UserRole.USER.value,
        department: str | None = None,
    ) -> dict[str, Any]:
        name = str(name or "").strip()
        email, phone = _clean_email(email), _clean_phone(phone)
        if not name or not password or not (email or phone):
            raise ValueError("Name, email or phone, and password are required")
        if role not in {r.value for r in UserRole}:
            raise ValueError(f"Unknown role '{role}'")
        if email and self.repo.find_user_by_email(email):
            raise ConflictError("User with this email already exists")
        if phone and self.repo.find_user_by_phone(phone):
            raise ConflictError("User with this phone already exists")

        user = User(
            name=name,
            email=email,
            phone=phone,
            password_hash=hash_password(password),
            role=role,
            department=department,
        )
        row = self.repo.create_user(user.to_row())
        logger.info("Created %s account %s", role, row["id"])
        return public_user(row)

    def register(self, payload: RegisterRequest) -> dict[str, Any]:
        user = self.create_account(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            password=payload.password,
        )
        return {"user": user, "message": "Registration successful"}

    def create_user(self, payload: CreateUserRequest) -> dict[str, Any]:
        return self.create_account(
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            password=payload.password,
            role=str(payload.role or UserRole.USER.value).strip().lower(),
            department=payload.department,
        )

    def login(self, payload: LoginRequest) -> dict[str, Any]:
        email, phone = _clean_email(payload.email), _clean_phone(payload.phone)
        if not payload.password or not (email or phone):
            raise ValueError("Email or phone and password are required")

        user = self.repo.find_user_by_email(email) if email else self.repo.find_user_by_phone(phone or "")
        if user is None or not verify_password(payload.password, user.get("password_hash")):
            raise AuthError("Invalid credentials")

        self.repo.update_user(user["id"], {"last_activity": utc_now()})
        return {"user": public_user(user), "token": self.create_token(user)}

    def list_users(self) -> list[dict[str, Any]]:
        return [public_user(u) for u in self.repo.list_users()]

    def ensure_default_admin(self, email: str | None = None, password: str | None = None) -> dict[str, Any] | None:
        admin_email = _clean_email(email if email is not None else settings.default_admin_email)
        admin_password = password if password is not None else settings.default_admin_password
        if not admin_email or not admin_password:
            logger.info("Default admin not configured; skipping")
            return None

        existing = self.repo.find_user_by_email(admin_email)
        if existing:
            if existing.get("role") != UserRole.ADMIN.value:
                existing = self.repo.update_user(existing["id"], {"role": UserRole.ADMIN.value}) or existing
            return public_user(existing)

        return self.create_account(
            name="Igire Admin",
            email=admin_email,
            phone=None,
            password=admin_password,
            role=UserRole.ADMIN.value,
        )

    # profile

    def profile(self, user_id: str) -> dict[str, Any]:
        user = self.repo.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        out = public_user(user)
        out["coins"] = int(user.get("points", 0))
        return out

    def update_profile(self, user_id: str, payload: ProfileUpdateRequest) -> dict[str, Any]:
        updates: dict[str, Any] = {}
        if payload.name and payload.name.strip():
            updates["name"] = payload.name.strip()
        if _clean_email(payload.email):
            updates["email"] = _clean_email(payload.email)
        if _clean_phone(payload.phone):
            updates["phone"] = _clean_phone(payload.phone)
        if not updates:
            raise ValueError("No valid fields to update")

        if "email" in updates:
            other = self.repo.find_user_by_email(updates["email"])
            if other and other["id"] != user_id:
                raise ConflictError("Email already in use")
        if "phone" in updates:
            other = self.repo.find_user_by_phone(updates["phone"])
            if other and other["id"] != user_id:
                raise ConflictError("Phone already in use")

        if self.repo.update_user(user_id, updates) is None:
            raise NotFoundError("User not found")
        return self.profile(user_id)

    def change_password(self, user_id: str, payload: ChangePasswordRequest) -> dict[str, Any]:
        if not payload.current_password or not payload.new_password:
            raise ValueError("Current and new password are required")
        if len(payload.new_password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")

        user = self.repo.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not verify_password(payload.current_password, user.get("password_hash")):
            raise ValueError("Current password is incorrect")

        self.repo.update_user(user_id, {"password_hash": hash_password(payload.new_password)})
        logger.info("Password changed for user %s", user_id)
        return {"message": "Password updated successfully"}
