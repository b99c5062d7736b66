from typing import List, Optional, Tuple, Type

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from .. import schemas
from ..errors import PersistenceError
from ..health import HealthCheckService, get_health_service
from ..templating import form_values, render

router = APIRouter(tags=["health"])

WEIGHT_BLOOD_FIELDS = ("name", "age", "height", "weight", "systolic", "diastolic")
SPO2_FIELDS = ("name", "age", "spo2")


def _field(form_data, field: str) -> str:
    # File uploads come back as UploadFile; treat them as a missing value.
    value = form_data.get(field)
    return value.strip() if isinstance(value, str) else ""


def _parse_form(
    form_cls: Type[BaseModel], form_data, fields
) -> Tuple[Optional[BaseModel], List[schemas.ValidationResult]]:
    payload = {field: _field(form_data, field) for field in fields}
    try:
        return form_cls(**payload), []
    except ValidationError as exc:
        return None, schemas.format_errors(exc, schemas.MEASUREMENT_MESSAGES)


def _invalid(request: Request, template: str, form_data, errors, status_code: int) -> HTMLResponse:
    return render(
        request,
        template,
        {"errors": errors, "form_values": form_values(form_data)},
        status_code=status_code,
    )


@router.get("/check-weight-blood", response_class=HTMLResponse)
def weight_blood_form(request: Request):
    return render(request, "check_weight_blood.html", {"page_title": "Cek Berat & Tekanan Darah"})


@router.post("/check-weight-blood", response_class=HTMLResponse)
async def check_weight_blood(
    request: Request, service: HealthCheckService = Depends(get_health_service)
):
    form_data = await request.form()
    form, errors = _parse_form(schemas.WeightBloodForm, form_data, WEIGHT_BLOOD_FIELDS)
    if errors:
        return _invalid(
            request, "check_weight_blood.html", form_data, errors, status.HTTP_400_BAD_REQUEST
        )

    try:
        result = await run_in_threadpool(service.check_weight_blood, form)
    except PersistenceError as exc:
        return _invalid(
            request,
            "check_weight_blood.html",
            form_data,
            exc.errors,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return render(
        request,
        "result_weight_blood.html",
        {
            "name": form.name,
            "bmi": result.bmi,
            "weight_category": result.weight_category,
            "systolic": form.systolic,
            "diastolic": form.diastolic,
            "blood_category": result.blood_category,
            "page_title": "Hasil Pemeriksaan",
        },
    )


@router.get("/check-spo2", response_class=HTMLResponse)
def spo2_form(request: Request):
    return render(request, "check_spo2.html", {"page_title": "Cek SpO2"})


@router.post("/check-spo2", response_class=HTMLResponse)
async def check_spo2(
    request: Request, service: HealthCheckService = Depends(get_health_service)
):
    form_data = await request.form()
    form, errors = _parse_form(schemas.SpO2Form, form_data, SPO2_FIELDS)
    if errors:
        return _invalid(request, "check_spo2.html", form_data, errors, status.HTTP_400_BAD_REQUEST)

    try:
        result = await run_in_threadpool(service.check_spo2, form)
    except PersistenceError as exc:
        return _invalid(
            request, "check_spo2.html", form_data, exc.errors, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return render(
        request,
        "result_spo2.html",
        {
            "name": form.name,
            "spo2": form.spo2,
            "spo2_category": result.spo2_category,
            "page_title": "Hasil Pemeriksaan",
        },
    )
