import logging
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import PersistenceError

logger = logging.getLogger(__name__)

# The driver rejects some bound values (e.g. integers wider than 64 bits) before
# SQLAlchemy sees them, so those are not wrapped as SQLAlchemyError.
STORE_ERRORS = (SQLAlchemyError, OverflowError)


class CredentialStore(Protocol):
    def get_by_email(self, email: str) -> Optional[models.User]:
        ...

    def add(self, name: str, email: str, password_hash: str) -> models.User:
        ...


class MeasurementStore(Protocol):
    def add(self, **fields) -> models.HealthData:
        ...


class SqlCredentialStore:
    """User records in the ``users`` table.

    Low-level SQLAlchemy errors are wrapped into PersistenceError so the
    request layer can turn them into a clean form message.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[models.User]:
        try:
            return self.db.query(models.User).filter(models.User.email == email).first()
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed")
            raise PersistenceError("Database error") from exc

    def add(self, name: str, email: str, password_hash: str) -> models.User:
        user = models.User(name=name, email=email, password=password_hash)
        self.db.add(user)
        try:
            self.db.commit()
        except STORE_ERRORS as exc:
            self.db.rollback()
            logger.exception("Inserting user failed")
            raise PersistenceError("Gagal mendaftarkan akun") from exc

        self.db.refresh(user)
        return user


class SqlMeasurementStore:
    def __init__(self, db: Session):
        self.db = db

    def add(self, **fields) -> models.HealthData:
        record = models.HealthData(**fields)
        self.db.add(record)
        try:
            self.db.commit()
        except STORE_ERRORS as exc:
            self.db.rollback()
            raise PersistenceError("Gagal menyimpan data kesehatan") from exc
        return record
