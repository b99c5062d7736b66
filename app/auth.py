import logging
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, Request
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy.orm import Session

from . import models, schemas
from .database import get_db
from .errors import AuthError, DuplicateEmail, LoginRequired, ValidationFailed
from .sessions import SessionManager, SessionRecord
from .stores import CredentialStore, SqlCredentialStore

logger = logging.getLogger(__name__)

SESSION_KEY = "session_id"


class PasswordHasher:
    """Salted bcrypt hashing; comparison is left to bcrypt's constant-time check."""

    def __init__(self, rounds: int = 10):
        self.context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, plaintext: str) -> str:
        return self.context.hash(plaintext)

    def verify(self, plaintext: str, hashed: Optional[str]) -> bool:
        if hashed is None:
            # Burn the same time as a real check so unknown accounts are not observable.
            self.context.dummy_verify()
            return False
        try:
            return self.context.verify(plaintext, hashed)
        except ValueError:
            logger.warning("Stored password hash is not a recognised bcrypt hash")
            return False


class AuthService:
    def __init__(
        self,
        credentials: CredentialStore,
        hasher: PasswordHasher,
        sessions: SessionManager,
    ):
        self.credentials = credentials
        self.hasher = hasher
        self.sessions = sessions

    def register(
        self, name: str, email: str, password: str, confirm_password: str
    ) -> models.User:
        """Create an account.

        Every invalid field is reported at once. The email uniqueness check
        happens before the password is hashed, so a duplicate costs no bcrypt
        round and leaves nothing behind.

        Raises:
            ValidationFailed: one or more fields are invalid.
            DuplicateEmail: the normalized email is already registered.
            PersistenceError: the database could not be read or written.
        """
        errors = []
        form = None
        try:
            form = schemas.RegisterForm(name=name, email=email, password=password)
        except ValidationError as exc:
            errors.extend(schemas.format_errors(exc))
        if confirm_password != password:
            errors.append(
                schemas.ValidationResult(
                    loc="confirm_password", msg=schemas.CONFIRM_MISMATCH
                )
            )
        if errors:
            raise ValidationFailed(errors)

        if self.credentials.get_by_email(form.email) is not None:
            raise DuplicateEmail()

        user = self.credentials.add(
            name=form.name,
            email=form.email,
            password_hash=self.hasher.hash(form.password),
        )
        logger.info("Registered user %s", user.id)
        return user

    def login(self, email: str, password: str) -> SessionRecord:
        """Check credentials and open a session.

        An unknown email and a wrong password raise the same AuthError.
        """
        try:
            form = schemas.LoginForm(email=email, password=password)
        except ValidationError as exc:
            raise ValidationFailed(schemas.format_errors(exc))

        user = self.credentials.get_by_email(form.email)
        stored_hash = user.password if user is not None else None
        if not self.hasher.verify(form.password, stored_hash):
            raise AuthError()

        return self.sessions.create(user.id, user.name)

    def logout(self, session_id: Optional[str]) -> None:
        self.sessions.destroy(session_id)


@dataclass(frozen=True)
class Allow:
    user_id: int
    user_name: str


@dataclass(frozen=True)
class Deny:
    pass


DENY = Deny()


def require_auth(
    sessions: SessionManager, session_id: Optional[str]
) -> Union[Allow, Deny]:
    record = sessions.get(session_id)
    if record is None:
        return DENY
    return Allow(user_id=record.user_id, user_name=record.user_name)


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_auth_service(
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AuthService:
    return AuthService(SqlCredentialStore(db), hasher, sessions)


def get_access(
    request: Request, sessions: SessionManager = Depends(get_session_manager)
) -> Union[Allow, Deny]:
    return require_auth(sessions, request.session.get(SESSION_KEY))


def require_user(access: Union[Allow, Deny] = Depends(get_access)) -> Allow:
    if isinstance(access, Allow):
        return access
    raise LoginRequired()
