from __future__ import annotations

import json

import requests

from igire.config import settings
from igire.infra.mongo_client import get_mongo_database
from igire.infra.supabase_client import get_supabase_client


def probe(url: str, headers: dict[str, str] | None = None) -> tuple[int | None, str]:
    try:
        res = requests.get(url, headers=headers or {}, timeout=20)
        return res.status_code, res.text[:200]
    except requests.RequestException as exc:
        return None, str(exc)


def main() -> None:
    print("== ENV VALIDATION ==")
    print(json.dumps({
        "APP_ENV": settings.app_env,
        "MONGODB_URI_VALID": settings.mongodb_configured(),
        "GROQ_KEY_PRESENT": bool(settings.groq_api_key),
        "ASSEMBLYAI_KEY_PRESENT": bool(settings.assemblyai_api_key),
        "SUPABASE_CONFIGURED": settings.supabase_configured(),
        "PINDO_KEY_PRESENT": bool(settings.pindo_api_key),
        "DEFAULT_ADMIN_PASSWORD_SET": bool(settings.default_admin_password),
        "JWT_SECRET_IS_DEFAULT": settings.jwt_secret == "dev-secret-change-me",
    }, indent=2))

    print("\n== CONNECTIVITY CHECKS ==")
    db, err = get_mongo_database()
    print(f"mongodb: {'ok (' + db.name + ')' if db is not None else err}")

    client, err = get_supabase_client()
    if client is None:
        print(f"supabase_storage: {err}")
    else:
        try:
            buckets = [b.name for b in client.storage.list_buckets()]
            present = settings.supabase_media_bucket in buckets
            print(f"supabase_storage: ok bucket '{settings.supabase_media_bucket}' present={present}")
        except Exception as exc:
            print(f"supabase_storage: {exc}")

    if settings.assemblyai_api_key:
        status, detail = probe(
            f"{settings.assemblyai_base_url}/transcript?limit=1",
            headers={"Authorization": settings.assemblyai_api_key},
        )
        print(f"assemblyai: status={status}")
        if status is None or status >= 400:
            print(f"  detail={detail}")

    if settings.groq_api_key:
        status, detail = probe(
            "https://api.groq.com/openai/v1/models",
            headers={"Authorization": f"Bearer {settings.groq_api_key}"},
        )
        print(f"groq_models: status={status}")
        if status is None or status >= 400:
            print(f"  detail={detail}")


if __name__ == "__main__":
    main()
