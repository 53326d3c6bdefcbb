from __future__ import annotations

from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from igire.config import settings


_CLIENT: MongoClient | None = None


def get_mongo_database() -> tuple[Any | None, str | None]:
    global _CLIENT

    if not settings.mongodb_configured():
        return None, "MONGODB_URI missing or not a mongodb:// URI"

    try:
        if _CLIENT is None:
            _CLIENT = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=5000, tz_aware=True)
        _CLIENT.admin.command("ping")
        return _CLIENT[settings.mongodb_db], None
    except PyMongoError as exc:
        return None, f"MongoDB unreachable: {exc}"
