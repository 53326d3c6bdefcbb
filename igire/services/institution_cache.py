from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Callable

from igire.config import settings
from igire.domain.models import UserRole
from igire.infra.repositories import Repository, RepositoryError

logger = logging.getLogger(__name__)


class InstitutionCache:
    """Process-local snapshot of routable institutions, refreshed after the TTL lapses."""

    def __init__(
        self,
        repo: Repository,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.repo = repo
        self.ttl_seconds = settings.institution_cache_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._rows: list[dict[str, Any]] | None = None
        self._last_refresh = 0.0

    def get(self) -> list[dict[str, Any]]:
        with self._lock:
            if self._rows is not None and self._clock() - self._last_refresh < self.ttl_seconds:
                return list(self._rows)

        try:
            rows = self.repo.list_institutions(role=UserRole.INSTITUTION.value)
        except RepositoryError as exc:
            logger.warning("Institution lookup failed, routing without institutions: %s", exc)
            return []

        snapshot = [{"name": r.get("name", ""), "department": r.get("department", "")} for r in rows]
        with self._lock:
            self._rows = snapshot
            self._last_refresh = self._clock()
        return list(snapshot)

    def invalidate(self) -> None:
        with self._lock:
            self._rows = None
            self._last_refresh = 0.0
