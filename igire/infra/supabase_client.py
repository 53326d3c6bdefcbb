from __future__ import annotations

from typing import Any

from supabase import create_client

from igire.config import settings


def get_supabase_client() -> tuple[Any | None, str | None]:
    if not settings.supabase_url or not settings.supabase_key:
        return None, "SUPABASE_URL or SUPABASE_KEY missing"

    if not settings.supabase_configured():
        return None, "SUPABASE_URL invalid (must look like https://<project-ref>.supabase.co)"

    try:
        return create_client(settings.supabase_url, settings.supabase_key), None
    except Exception as exc:  # pragma: no cover
        return None, f"Supabase init failed: {exc}"
