from typing import List, Optional

from pydantic import BaseModel, EmailStr, ValidationError, conint, constr, field_validator


class ValidationResult(BaseModel):
    loc: str
    msg: str


FIELD_MESSAGES = {
    "name": "Nama harus terdiri dari 2 sampai 255 karakter",
    "email": "Masukkan alamat email yang valid",
    "password": "Password minimal 6 karakter",
    "age": "Umur harus berupa angka bulat antara 0 dan 150",
    "height": "Tinggi badan harus berupa angka",
    "weight": "Berat badan harus berupa angka",
    "systolic": "Tekanan sistolik harus berupa angka",
    "diastolic": "Tekanan diastolik harus berupa angka",
    "spo2": "SpO2 harus berupa angka",
}

CONFIRM_MISMATCH = "Konfirmasi password tidak cocok"

MEASUREMENT_MESSAGES = {**FIELD_MESSAGES, "name": "Nama wajib diisi"}


class LoginForm(BaseModel):
    email: EmailStr
    password: constr(min_length=6)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class RegisterForm(LoginForm):
    name: constr(strip_whitespace=True, min_length=2, max_length=255)


class MeasurementForm(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)
    age: conint(ge=0, le=150)


class WeightBloodForm(MeasurementForm):
    height: float
    weight: float
    systolic: float
    diastolic: float


class SpO2Form(MeasurementForm):
    spo2: float


def format_errors(exc: ValidationError, messages: Optional[dict] = None) -> List[ValidationResult]:
    messages = FIELD_MESSAGES if messages is None else messages
    results: List[ValidationResult] = []
    seen = set()
    for error in exc.errors():
        loc = ".".join(str(p) for p in error["loc"])
        if loc in seen:
            continue
        seen.add(loc)
        results.append(ValidationResult(loc=loc, msg=messages.get(loc, error["msg"])))
    return results
