import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .database import get_db
from .errors import PersistenceError
from .schemas import SpO2Form, WeightBloodForm
from .stores import MeasurementStore, SqlMeasurementStore

logger = logging.getLogger(__name__)

UNDERWEIGHT = "Underweight"
NORMAL = "Normal"
OVERWEIGHT = "Overweight"
OBESE = "Obese"

ELEVATED = "Elevated"
STAGE_1 = "Stage 1"
STAGE_2 = "Stage 2"

LOW = "Low"
VERY_LOW = "Very Low"

DISPLAY_LABELS = {
    STAGE_1: "High Blood Pressure Stage 1",
    STAGE_2: "High Blood Pressure Stage 2",
    LOW: "Low (Perlu perhatian)",
    VERY_LOW: "Very Low (Segera konsultasi dokter)",
}


def display_label(category: str) -> str:
    return DISPLAY_LABELS.get(category, category)


@dataclass(frozen=True)
class WeightBloodResult:
    bmi: float
    weight_category: str
    blood_category: str


@dataclass(frozen=True)
class SpO2Result:
    spo2_category: str


CENT = Decimal("0.01")
# Wide enough to quantize any finite float to cents without InvalidOperation.
_ROUNDING_CONTEXT = Context(prec=400)


def round_half_up(value: float) -> float:
    """Round to 2 decimals, ties away from zero, on the float's exact binary value."""
    if not math.isfinite(value):
        return value
    rounded = Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP, context=_ROUNDING_CONTEXT)
    return float(rounded)


def body_mass_index(height_cm: float, weight_kg: float) -> float:
    height_m = height_cm / 100
    denominator = height_m * height_m
    if denominator == 0:
        # Zero height has no BMI; keep the function total like float division elsewhere.
        return math.copysign(math.inf, weight_kg) if weight_kg else math.nan
    return round_half_up(weight_kg / denominator)


def weight_category(bmi: float) -> str:
    if bmi < 18.5:
        return UNDERWEIGHT
    if bmi < 25:
        return NORMAL
    if bmi < 30:
        return OVERWEIGHT
    return OBESE


def blood_category(systolic: float, diastolic: float) -> str:
    # First match wins. The Stage 1 band uses OR, so e.g. 150/85 lands in
    # Stage 1 even though the systolic value alone is Stage 2.
    if systolic < 120 and diastolic < 80:
        return NORMAL
    if systolic < 130 and diastolic < 80:
        return ELEVATED
    if systolic < 140 or diastolic < 90:
        return STAGE_1
    return STAGE_2


def classify_weight_blood(
    height_cm: float, weight_kg: float, systolic: float, diastolic: float
) -> WeightBloodResult:
    bmi = body_mass_index(height_cm, weight_kg)
    return WeightBloodResult(
        bmi=bmi,
        weight_category=weight_category(bmi),
        blood_category=blood_category(systolic, diastolic),
    )


def classify_spo2(spo2: float) -> SpO2Result:
    if spo2 >= 95:
        category = NORMAL
    elif spo2 >= 90:
        category = LOW
    else:
        category = VERY_LOW
    return SpO2Result(spo2_category=category)


class HealthCheckService:
    """Classify a submission and append it to ``health_data``.

    The classification is always returned. A failed insert is logged and
    ignored unless ``strict`` is set, in which case PersistenceError
    propagates to the caller.
    """

    def __init__(self, store: MeasurementStore, strict: bool = False):
        self.store = store
        self.strict = strict

    def _record(self, **fields) -> None:
        try:
            self.store.add(**fields)
        except PersistenceError:
            logger.exception("Could not store health data for %r", fields.get("name"))
            if self.strict:
                raise

    def check_weight_blood(self, form: WeightBloodForm) -> WeightBloodResult:
        result = classify_weight_blood(
            form.height, form.weight, form.systolic, form.diastolic
        )
        self._record(
            name=form.name,
            age=form.age,
            height=form.height,
            weight=form.weight,
            systolic=form.systolic,
            diastolic=form.diastolic,
        )
        return result

    def check_spo2(self, form: SpO2Form) -> SpO2Result:
        result = classify_spo2(form.spo2)
        self._record(name=form.name, age=form.age, spo2=form.spo2)
        return result


def get_health_service(request: Request, db: Session = Depends(get_db)) -> HealthCheckService:
    return HealthCheckService(
        SqlMeasurementStore(db),
        strict=request.app.state.settings.strict_measurement_persistence,
    )
