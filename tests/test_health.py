import logging
import math

import pytest

from app import health
from app.errors import PersistenceError
from app.schemas import SpO2Form, WeightBloodForm


def test_classify_normal_weight_and_blood_pressure():
    result = health.classify_weight_blood(170, 70, 110, 70)
    assert result.bmi == 24.22
    assert result.weight_category == "Normal"
    assert result.blood_category == "Normal"


def test_classify_obese_stage_one():
    result = health.classify_weight_blood(160, 90, 135, 85)
    assert result.bmi == 35.16
    assert result.weight_category == "Obese"
    # systolic < 140 is enough for Stage 1
    assert result.blood_category == "Stage 1"


@pytest.mark.parametrize(
    "bmi, expected",
    [
        (18.49, "Underweight"),
        (18.5, "Normal"),
        (24.99, "Normal"),
        (25.0, "Overweight"),
        (29.99, "Overweight"),
        (30.0, "Obese"),
    ],
)
def test_weight_category_boundaries(bmi, expected):
    assert health.weight_category(bmi) == expected


@pytest.mark.parametrize(
    "systolic, diastolic, expected",
    [
        (119, 79, "Normal"),
        (120, 79, "Elevated"),
        (129, 79, "Elevated"),
        (125, 80, "Stage 1"),
        (139, 95, "Stage 1"),
        # Stage 2 systolic with a sub-90 diastolic still matches the Stage 1 band first.
        (160, 85, "Stage 1"),
        (140, 90, "Stage 2"),
        (180, 120, "Stage 2"),
    ],
)
def test_blood_category_first_match_wins(systolic, diastolic, expected):
    assert health.blood_category(systolic, diastolic) == expected


@pytest.mark.parametrize(
    "spo2, expected",
    [(96, "Normal"), (95, "Normal"), (92, "Low"), (90, "Low"), (89.9, "Very Low"), (85, "Very Low")],
)
def test_classify_spo2(spo2, expected):
    assert health.classify_spo2(spo2).spo2_category == expected


def test_bmi_category_uses_rounded_value():
    # 18.498 is below 18.5 but rounds up to it, so the category is Normal.
    result = health.classify_weight_blood(100, 18.498, 110, 70)
    assert result.bmi == 18.5
    assert result.weight_category == "Normal"


def test_zero_height_does_not_raise():
    assert health.classify_weight_blood(0, 70, 110, 70).weight_category == "Obese"
    nan_result = health.classify_weight_blood(0, 0, 110, 70)
    assert math.isnan(nan_result.bmi)
    assert nan_result.weight_category == "Obese"


def test_negative_height_is_not_rejected():
    result = health.classify_weight_blood(-170, 70, 110, 70)
    assert result.bmi == 24.22


def test_display_labels():
    assert health.display_label("Stage 2") == "High Blood Pressure Stage 2"
    assert health.display_label("Low") == "Low (Perlu perhatian)"
    assert health.display_label("Normal") == "Normal"


def _weight_blood_form():
    return WeightBloodForm(
        name="Siti", age=40, height=160, weight=90, systolic=135, diastolic=85
    )


def test_service_records_weight_blood_submission(measurement_store):
    service = health.HealthCheckService(measurement_store)

    result = service.check_weight_blood(_weight_blood_form())

    assert result.blood_category == "Stage 1"
    assert measurement_store.records == [
        {
            "name": "Siti",
            "age": 40,
            "height": 160.0,
            "weight": 90.0,
            "systolic": 135.0,
            "diastolic": 85.0,
        }
    ]


def test_service_records_spo2_submission(measurement_store):
    service = health.HealthCheckService(measurement_store)

    result = service.check_spo2(SpO2Form(name="Budi", age=30, spo2=92))

    assert result.spo2_category == "Low"
    assert measurement_store.records == [{"name": "Budi", "age": 30, "spo2": 92.0}]


class BrokenStore:
    def add(self, **fields):
        raise PersistenceError("Gagal menyimpan data kesehatan")


def test_service_swallows_store_failure_by_default(caplog):
    service = health.HealthCheckService(BrokenStore())

    with caplog.at_level(logging.ERROR, logger="app.health"):
        result = service.check_spo2(SpO2Form(name="Budi", age=30, spo2=85))

    assert result.spo2_category == "Very Low"
    assert "Could not store health data" in caplog.text


def test_service_strict_mode_propagates_store_failure():
    service = health.HealthCheckService(BrokenStore(), strict=True)

    with pytest.raises(PersistenceError):
        service.check_weight_blood(_weight_blood_form())


@pytest.mark.parametrize(
    "weight, expected",
    [(24.125, 24.13), (0.125, 0.13), (-24.125, -24.13), (24.124, 24.12)],
)
def test_bmi_rounds_exact_ties_away_from_zero(weight, expected):
    # Height 100 cm makes the BMI equal to the weight.
    assert health.classify_weight_blood(100, weight, 110, 70).bmi == expected


def test_round_half_up_passes_non_finite_values_through():
    assert health.round_half_up(math.inf) == math.inf
    assert math.isnan(health.round_half_up(math.nan))
