from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv


load_dotenv()


def _to_secret_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _get_streamlit_secret(*keys: str) -> str:
    # The admin dashboard may be deployed on Streamlit Cloud where env vars live in st.secrets.
    try:
        import streamlit as st
    except ImportError:
        return ""

    try:
        for key in keys:
            for candidate in (key, key.lower(), key.upper()):
                value = _to_secret_str(st.secrets.get(candidate))
                if value:
                    return value
    except Exception:  # no secrets.toml outside Streamlit deployments
        return ""
    return ""


def _get_config_value(*keys: str, default: str = "") -> str:
    for key in keys:
        value = os.getenv(key, "").strip()
        if value:
            return value
    secret_value = _get_streamlit_secret(*keys)
    if secret_value:
        return secret_value
    return default


@dataclass(frozen=True)
class Settings:
    app_env: str
    mongodb_uri: str
    mongodb_db: str
    groq_api_key: str
    groq_model: str
    assemblyai_api_key: str
    assemblyai_base_url: str
    transcription_timeout_seconds: float
    transcription_poll_seconds: float
    supabase_url: str
    supabase_key: str
    supabase_media_bucket: str
    pindo_api_key: str
    pindo_sender: str
    pindo_base_url: str
    jwt_secret: str
    jwt_expire_days: int
    institution_cache_seconds: int
    default_admin_email: str
    default_admin_password: str
    log_level: str
    log_dir: str
    dashboard_refresh_seconds: int

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"prod", "production"}

    def mongodb_configured(self) -> bool:
        return self.mongodb_uri.startswith(("mongodb://", "mongodb+srv://"))

    def supabase_configured(self) -> bool:
        return bool(self.supabase_url.startswith("https://") and self.supabase_key)


def load_settings() -> Settings:
    return Settings(
        app_env=_get_config_value("APP_ENV", default="dev"),
        mongodb_uri=_get_config_value("MONGODB_URI", "MONGODB_URL"),
        mongodb_db=_get_config_value("MONGODB_DB", default="igire"),
        groq_api_key=_get_config_value("GROQ_API_KEY"),
        groq_model=_get_config_value("GROQ_MODEL", default="llama-3.3-70b-versatile"),
        assemblyai_api_key=_get_config_value("ASSEMBLYAI_API_KEY"),
        assemblyai_base_url=_get_config_value("ASSEMBLYAI_BASE_URL", default="https://api.assemblyai.com/v2").rstrip("/"),
        transcription_timeout_seconds=float(_get_config_value("TRANSCRIPTION_TIMEOUT_SECONDS", default="30") or 30),
        transcription_poll_seconds=float(_get_config_value("TRANSCRIPTION_POLL_SECONDS", default="1") or 1),
        supabase_url=_get_config_value("SUPABASE_URL").rstrip("/"),
        supabase_key=_get_config_value("SUPABASE_SERVICE_KEY", "SUPABASE_KEY"),
        supabase_media_bucket=_get_config_value("SUPABASE_MEDIA_BUCKET", default="complaints"),
        pindo_api_key=_get_config_value("PINDO_API_KEY"),
        pindo_sender=_get_config_value("PINDO_SENDER", "PINDO_SENDER_NAME", default="IGIRE"),
        pindo_base_url=_get_config_value("PINDO_BASE_URL", default="https://api.pindo.io/v1").rstrip("/"),
        jwt_secret=_get_config_value("JWT_SECRET", default="dev-secret-change-me"),
        jwt_expire_days=int(_get_config_value("JWT_EXPIRE_DAYS", default="7") or 7),
        institution_cache_seconds=int(_get_config_value("INSTITUTION_CACHE_SECONDS", default="300") or 300),
        default_admin_email=_get_config_value("DEFAULT_ADMIN_EMAIL", default="admin@igire.rw").lower(),
        default_admin_password=_get_config_value("DEFAULT_ADMIN_PASSWORD"),
        log_level=_get_config_value("LOG_LEVEL", default="INFO").upper(),
        log_dir=_get_config_value("LOG_DIR", default=os.path.join(os.getcwd(), "logs")),
        dashboard_refresh_seconds=int(_get_config_value("DASHBOARD_REFRESH_SECONDS", default="30") or 30),
    )


settings = load_settings()
