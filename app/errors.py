from typing import List, Optional

from .schemas import ValidationResult

INVALID_CREDENTIALS = "Email atau password salah"
EMAIL_TAKEN = "Email sudah terdaftar"
SYSTEM_ERROR = "Terjadi kesalahan sistem"


class HealthCheckError(Exception):
    """Base class for errors surfaced to the user as form feedback."""

    message = SYSTEM_ERROR

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    @property
    def errors(self) -> List[ValidationResult]:
        return [ValidationResult(loc="__root__", msg=self.message)]


class ValidationFailed(HealthCheckError):
    """Field-level problems, collected rather than short-circuited."""

    message = "Data yang dikirim tidak valid"

    def __init__(self, errors: List[ValidationResult]):
        super().__init__()
        self._errors = list(errors)

    @property
    def errors(self) -> List[ValidationResult]:
        return self._errors


class DuplicateEmail(HealthCheckError):
    message = EMAIL_TAKEN


class AuthError(HealthCheckError):
    """Invalid credentials. Deliberately says nothing about which part was wrong."""

    message = INVALID_CREDENTIALS


class PersistenceError(HealthCheckError):
    """Raised when the database cannot be read or written."""


class LoginRequired(Exception):
    """Raised by the access guard; the app turns it into a redirect to /login."""
