"""
Admin role lookups against the external user directory.

The directory is the ``users`` table (id, role) owned by the auth service.
Without a database the ids listed in ADMIN_USER_IDS are treated as admins,
which keeps local runs usable.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from repositories.postgres_repo import PostgresRepository, get_db_engine
from utils.cache_service import LRUCache
from utils.error_handling import AuthorizationError, PersistenceError, ValidationError
from utils.logging_config import get_logger
from utils.settings import get_settings

logger = get_logger(__name__)

ADMIN_ROLE = "admin"
_USE_DEFAULT_ENGINE = object()


class UserDirectory:
    """Answers "is this user an admin" with a short-lived cache."""

    def __init__(
        self,
        engine=_USE_DEFAULT_ENGINE,
        admin_ids: Optional[Iterable[str]] = None,
        cache_ttl_seconds: Optional[int] = None,
    ):
        settings = get_settings()
        if engine is _USE_DEFAULT_ENGINE:
            engine = get_db_engine(settings)
        self.repo: Optional[PostgresRepository] = PostgresRepository(engine) if engine is not None else None
        self.admin_ids = frozenset(admin_ids if admin_ids is not None else settings.admin_user_ids)
        ttl = cache_ttl_seconds if cache_ttl_seconds is not None else settings.admin_cache_ttl_seconds
        self.cache = LRUCache(max_size=256, ttl_seconds=ttl)

    def is_admin(self, user_id: str) -> bool:
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        if self.repo is None:
            result = user_id in self.admin_ids
        else:
            result = self._lookup_role(user_id) == ADMIN_ROLE

        self.cache.set(user_id, result)
        return result

    def require_admin(self, user_id: Optional[str]) -> str:
        """Raise AuthorizationError unless ``user_id`` holds the admin role."""
        if not user_id:
            raise ValidationError("admin_id is required")
        if not self.is_admin(user_id):
            logger.warning("Admin check failed", extra={"admin_id": user_id})
            raise AuthorizationError()
        return user_id

    def _lookup_role(self, user_id: str) -> Optional[str]:
        try:
            row = self.repo.fetch_one("SELECT role FROM users WHERE id = :id", {"id": user_id})
        except SQLAlchemyError as exc:
            logger.error("User directory lookup failed", extra={"error": str(exc)})
            raise PersistenceError("User directory unavailable") from exc
        return row["role"] if row else None

