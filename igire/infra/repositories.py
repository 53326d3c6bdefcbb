from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import RLock
from typing import Any

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from igire.infra.mongo_client import get_mongo_database

logger = logging.getLogger(__name__)

USERS = "users"
COMPLAINTS = "complaints"
INSTITUTIONS = "institutions"
PREDICTIONS = "predictions"


class RepositoryError(RuntimeError):
    pass


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _created_desc(row: dict[str, Any]) -> str:
    return str(row.get("created_at", ""))


class Repository:
    """Persistence boundary: single-document reads and writes, no transactions."""

    # users
    def create_user(self, row: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def find_user_by_email(self, email: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def find_user_by_phone(self, phone: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def list_users(self) -> list[dict[str, Any]]:
        raise NotImplementedError

    def update_user(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        raise NotImplementedError

    def increment_points(self, user_id: str, delta: int) -> dict[str, Any] | None:
        raise NotImplementedError

    def debit_points(self, user_id: str, coins: int, record: dict[str, Any]) -> dict[str, Any] | None:
        """Deduct coins and append a redemption record only if the balance covers it."""
        raise NotImplementedError

    # complaints
    def create_complaint(self, row: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def get_complaint(self, complaint_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def update_complaint(self, complaint_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        raise NotImplementedError

    def list_complaints(self, since: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        raise NotImplementedError

    def list_complaints_by_user(self, user_id: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    # institutions
    def create_institution(self, row: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def get_institution(self, institution_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def find_institution_by_email(self, email: str) -> dict[str, Any] | None:
        raise NotImplementedError

    def list_institutions(self, role: str | None = None) -> list[dict[str, Any]]:
        raise NotImplementedError

    def update_institution(self, institution_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        raise NotImplementedError

    def delete_institution(self, institution_id: str) -> bool:
        raise NotImplementedError

    # predictions
    def create_prediction(self, row: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def list_predictions(self, location: str | None = None, limit: int = 10) -> list[dict[str, Any]]:
        raise NotImplementedError

    def delete_prediction(self, prediction_id: str) -> bool:
        raise NotImplementedError


class InMemoryRepository(Repository):
    def __init__(self) -> None:
        self._lock = RLock()
        self._collections: dict[str, dict[str, dict[str, Any]]] = {
            USERS: {},
            COMPLAINTS: {},
            INSTITUTIONS: {},
            PREDICTIONS: {},
        }

    def _insert(self, collection: str, row: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            item = dict(row)
            if not item.get("id"):
                raise RepositoryError(f"Insert into {collection} requires an id")
            self._collections[collection][str(item["id"])] = item
            return dict(item)

    def _get(self, collection: str, row_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._collections[collection].get(str(row_id))
            return dict(row) if row else None

    def _find_one(self, collection: str, key: str, value: Any) -> dict[str, Any] | None:
        with self._lock:
            for row in self._collections[collection].values():
                if value is not None and row.get(key) == value:
                    return dict(row)
            return None

    def _update(self, collection: str, row_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        with self._lock:
            existing = self._collections[collection].get(str(row_id))
            if existing is None:
                return None
            existing.update(updates)
            existing["updated_at"] = _utc_now()
            return dict(existing)

    def _delete(self, collection: str, row_id: str) -> bool:
        with self._lock:
            return self._collections[collection].pop(str(row_id), None) is not None

    def _all(self, collection: str) -> list[dict[str, Any]]:
        with self._lock:
            rows = sorted(self._collections[collection].values(), key=_created_desc, reverse=True)
            return [dict(r) for r in rows]

    def create_user(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(USERS, row)

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        return self._get(USERS, user_id)

    def find_user_by_email(self, email: str) -> dict[str, Any] | None:
        return self._find_one(USERS, "email", email)

    def find_user_by_phone(self, phone: str) -> dict[str, Any] | None:
        return self._find_one(USERS, "phone", phone)

    def list_users(self) -> list[dict[str, Any]]:
        return self._all(USERS)

    def update_user(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        return self._update(USERS, user_id, updates)

    def increment_points(self, user_id: str, delta: int) -> dict[str, Any] | None:
        with self._lock:
            existing = self._collections[USERS].get(str(user_id))
            if existing is None:
                return None
            existing["points"] = int(existing.get("points", 0)) + delta
            existing["updated_at"] = _utc_now()
            return dict(existing)

    def debit_points(self, user_id: str, coins: int, record: dict[str, Any]) -> dict[str, Any] | None:
        with self._lock:
            existing = self._collections[USERS].get(str(user_id))
            if existing is None or int(existing.get("points", 0)) < coins:
                return None
            existing["points"] = int(existing.get("points", 0)) - coins
            existing["reward_history"] = [*existing.get("reward_history", []), dict(record)]
            existing["updated_at"] = _utc_now()
            return dict(existing)

    def create_complaint(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(COMPLAINTS, row)

    def get_complaint(self, complaint_id: str) -> dict[str, Any] | None:
        return self._get(COMPLAINTS, complaint_id)

    def update_complaint(self, complaint_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        return self._update(COMPLAINTS, complaint_id, updates)

    def list_complaints(self, since: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        rows = self._all(COMPLAINTS)
        if since:
            rows = [r for r in rows if str(r.get("created_at", "")) >= since]
        return rows[:limit] if limit else rows

    def list_complaints_by_user(self, user_id: str) -> list[dict[str, Any]]:
        return [r for r in self._all(COMPLAINTS) if r.get("user_id") == user_id]

    def create_institution(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(INSTITUTIONS, row)

    def get_institution(self, institution_id: str) -> dict[str, Any] | None:
        return self._get(INSTITUTIONS, institution_id)

    def find_institution_by_email(self, email: str) -> dict[str, Any] | None:
        return self._find_one(INSTITUTIONS, "email", email)

    def list_institutions(self, role: str | None = None) -> list[dict[str, Any]]:
        rows = self._all(INSTITUTIONS)
        if role:
            rows = [r for r in rows if r.get("role") == role]
        return rows

    def update_institution(self, institution_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        return self._update(INSTITUTIONS, institution_id, updates)

    def delete_institution(self, institution_id: str) -> bool:
        return self._delete(INSTITUTIONS, institution_id)

    def create_prediction(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(PREDICTIONS, row)

    def list_predictions(self, location: str | None = None, limit: int = 10) -> list[dict[str, Any]]:
        rows = self._all(PREDICTIONS)
        if location:
            rows = [r for r in rows if r.get("location") == location]
        rows.sort(key=lambda r: int(r.get("probability", 0)), reverse=True)
        return rows[:limit]

    def delete_prediction(self, prediction_id: str) -> bool:
        return self._delete(PREDICTIONS, prediction_id)


class MongoRepository(Repository):
    _NO_OBJECT_ID = {"_id": 0}

    def __init__(self, db: Any) -> None:
        self.db = db

    def ensure_indexes(self) -> None:
        self.db[USERS].create_index("id", unique=True)
        self.db[USERS].create_index("email", sparse=True)
        self.db[USERS].create_index("phone", sparse=True)
        self.db[COMPLAINTS].create_index("id", unique=True)
        self.db[COMPLAINTS].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
        self.db[INSTITUTIONS].create_index("id", unique=True)
        self.db[PREDICTIONS].create_index([("location", ASCENDING), ("probability", DESCENDING)])

    def _insert(self, collection: str, row: dict[str, Any]) -> dict[str, Any]:
        payload = dict(row)
        try:
            self.db[collection].insert_one(payload)
        except PyMongoError as exc:
            raise RepositoryError(f"Insert failed for {collection}: {exc}") from exc
        payload.pop("_id", None)
        return payload

    def _find_one(self, collection: str, query: dict[str, Any]) -> dict[str, Any] | None:
        try:
            return self.db[collection].find_one(query, self._NO_OBJECT_ID)
        except PyMongoError as exc:
            raise RepositoryError(f"Lookup failed for {collection}: {exc}") from exc

    def _find(
        self,
        collection: str,
        query: dict[str, Any],
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        try:
            cursor = self.db[collection].find(query, self._NO_OBJECT_ID)
            cursor = cursor.sort(sort or [("created_at", DESCENDING)])
            if limit:
                cursor = cursor.limit(limit)
            return [dict(r) for r in cursor]
        except PyMongoError as exc:
            raise RepositoryError(f"Query failed for {collection}: {exc}") from exc

    def _update(self, collection: str, query: dict[str, Any], update: dict[str, Any]) -> dict[str, Any] | None:
        update = dict(update)
        update.setdefault("$set", {})["updated_at"] = _utc_now()
        try:
            return self.db[collection].find_one_and_update(
                query,
                update,
                projection=self._NO_OBJECT_ID,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise RepositoryError(f"Update failed for {collection}: {exc}") from exc

    def _delete(self, collection: str, row_id: str) -> bool:
        try:
            return self.db[collection].delete_one({"id": row_id}).deleted_count > 0
        except PyMongoError as exc:
            raise RepositoryError(f"Delete failed for {collection}: {exc}") from exc

    def create_user(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(USERS, row)

    def get_user(self, user_id: str) -> dict[str, Any] | None:
        return self._find_one(USERS, {"id": user_id})

    def find_user_by_email(self, email: str) -> dict[str, Any] | None:
        return self._find_one(USERS, {"email": email})

    def find_user_by_phone(self, phone: str) -> dict[str, Any] | None:
        return self._find_one(USERS, {"phone": phone})

    def list_users(self) -> list[dict[str, Any]]:
        return self._find(USERS, {})

    def update_user(self, user_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        return self._update(USERS, {"id": user_id}, {"$set": dict(updates)})

    def increment_points(self, user_id: str, delta: int) -> dict[str, Any] | None:
        return self._update(USERS, {"id": user_id}, {"$inc": {"points": delta}})

    def debit_points(self, user_id: str, coins: int, record: dict[str, Any]) -> dict[str, Any] | None:
        return self._update(
            USERS,
            {"id": user_id, "points": {"$gte": coins}},
            {"$inc": {"points": -coins}, "$push": {"reward_history": dict(record)}},
        )

    def create_complaint(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(COMPLAINTS, row)

    def get_complaint(self, complaint_id: str) -> dict[str, Any] | None:
        return self._find_one(COMPLAINTS, {"id": complaint_id})

    def update_complaint(self, complaint_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        return self._update(COMPLAINTS, {"id": complaint_id}, {"$set": dict(updates)})

    def list_complaints(self, since: str | None = None, limit: int | None = None) -> list[dict[str, Any]]:
        query: dict[str, Any] = {"created_at": {"$gte": since}} if since else {}
        return self._find(COMPLAINTS, query, limit=limit)

    def list_complaints_by_user(self, user_id: str) -> list[dict[str, Any]]:
        return self._find(COMPLAINTS, {"user_id": user_id})

    def create_institution(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(INSTITUTIONS, row)

    def get_institution(self, institution_id: str) -> dict[str, Any] | None:
        return self._find_one(INSTITUTIONS, {"id": institution_id})

    def find_institution_by_email(self, email: str) -> dict[str, Any] | None:
        return self._find_one(INSTITUTIONS, {"email": email})

    def list_institutions(self, role: str | None = None) -> list[dict[str, Any]]:
        return self._find(INSTITUTIONS, {"role": role} if role else {})

    def update_institution(self, institution_id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        return self._update(INSTITUTIONS, {"id": institution_id}, {"$set": dict(updates)})

    def delete_institution(self, institution_id: str) -> bool:
        return self._delete(INSTITUTIONS, institution_id)

    def create_prediction(self, row: dict[str, Any]) -> dict[str, Any]:
        return self._insert(PREDICTIONS, row)

    def list_predictions(self, location: str | None = None, limit: int = 10) -> list[dict[str, Any]]:
        return self._find(
            PREDICTIONS,
            {"location": location} if location else {},
            sort=[("probability", DESCENDING), ("created_at", DESCENDING)],
            limit=limit,
        )

    def delete_prediction(self, prediction_id: str) -> bool:
        return self._delete(PREDICTIONS, prediction_id)


def build_repository() -> tuple[Repository, bool, str | None]:
    db, err = get_mongo_database()
    if db is None:
        logger.warning("Using in-memory repository: %s", err)
        return InMemoryRepository(), False, err

    repo = MongoRepository(db)
    try:
        repo.ensure_indexes()
    except PyMongoError as exc:
        logger.warning("MongoDB index creation failed: %s", exc)
    return repo, True, None
