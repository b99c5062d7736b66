"""Server-side login sessions keyed by an opaque token.

The browser only ever holds the token (inside the signed session cookie);
who the token belongs to and when it stops being valid lives here. Expiry
is a fixed lifetime from creation and is checked lazily on every lookup.
"""

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from . import models
from .errors import PersistenceError

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    user_id: int
    user_name: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class SessionBackend(Protocol):
    def save(self, record: SessionRecord) -> None:
        ...

    def load(self, session_id: str) -> Optional[SessionRecord]:
        ...

    def delete(self, session_id: str) -> None:
        ...

    def delete_expired(self, now: datetime) -> int:
        ...


class InMemorySessionBackend:
    """Process-local map. Fine for a single worker, lost on restart."""

    def __init__(self):
        self._records: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def save(self, record: SessionRecord) -> None:
        with self._lock:
            self._records[record.session_id] = record

    def load(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.get(session_id)

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, record in self._records.items() if record.is_expired(now)]
            for key in expired:
                del self._records[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class DatabaseSessionBackend:
    """Sessions in the ``sessions`` table, shared by every worker using the database."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _to_row_time(value: datetime) -> datetime:
        # Stored as naive UTC; SQLite has no timezone support.
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def save(self, record: SessionRecord) -> None:
        with self.session_factory() as db:
            db.add(
                models.UserSession(
                    session_id=record.session_id,
                    user_id=record.user_id,
                    user_name=record.user_name,
                    expires_at=self._to_row_time(record.expires_at),
                )
            )
            try:
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError() from exc

    def load(self, session_id: str) -> Optional[SessionRecord]:
        with self.session_factory() as db:
            try:
                row = db.get(models.UserSession, session_id)
            except SQLAlchemyError as exc:
                raise PersistenceError() from exc
            if row is None:
                return None
            return SessionRecord(
                session_id=row.session_id,
                user_id=row.user_id,
                user_name=row.user_name,
                expires_at=row.expires_at.replace(tzinfo=timezone.utc),
            )

    def delete(self, session_id: str) -> None:
        with self.session_factory() as db:
            try:
                db.query(models.UserSession).filter(
                    models.UserSession.session_id == session_id
                ).delete(synchronize_session=False)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError() from exc

    def delete_expired(self, now: datetime) -> int:
        with self.session_factory() as db:
            try:
                count = db.query(models.UserSession).filter(
                    models.UserSession.expires_at <= self._to_row_time(now)
                ).delete(synchronize_session=False)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise PersistenceError() from exc
        return count


class SessionManager:
    def __init__(
        self,
        backend: SessionBackend,
        lifetime: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.backend = backend
        self.lifetime = lifetime
        self.clock = clock

    def create(self, user_id: int, user_name: str) -> SessionRecord:
        now = self.clock()
        self.reap_expired(now)
        record = SessionRecord(
            session_id=secrets.token_urlsafe(TOKEN_BYTES),
            user_id=user_id,
            user_name=user_name,
            expires_at=now + self.lifetime,
        )
        self.backend.save(record)
        logger.info("Session created for user %s", user_id)
        return record

    def get(self, session_id: Optional[str]) -> Optional[SessionRecord]:
        """Return the live session for ``session_id`` or None.

        An expired session is never returned; it is removed on the spot.
        """
        if not session_id:
            return None
        record = self.backend.load(session_id)
        if record is None:
            return None
        if record.is_expired(self.clock()):
            self.backend.delete(session_id)
            logger.debug("Session for user %s expired", record.user_id)
            return None
        return record

    def destroy(self, session_id: Optional[str]) -> None:
        if session_id:
            self.backend.delete(session_id)

    def reap_expired(self, now: Optional[datetime] = None) -> int:
        return self.backend.delete_expired(now or self.clock())


def build_session_manager(settings, session_factory=None) -> SessionManager:
    if settings.session_backend == "database":
        if session_factory is None:
            from .database import SessionLocal

            session_factory = SessionLocal
        backend = DatabaseSessionBackend(session_factory)
    else:
        backend = InMemorySessionBackend()
    return SessionManager(
        backend,
        lifetime=timedelta(seconds=settings.session_lifetime_seconds),
    )
