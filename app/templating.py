from pathlib import Path
from typing import Optional

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from .config import settings
from .health import display_label

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.globals["app_name"] = settings.app_name
templates.env.filters["label"] = display_label

SECRET_FIELDS = ("password", "confirm_password")


def form_values(form_data) -> dict:
    """Echo submitted values back into a re-rendered form, minus the secrets."""
    return {
        key: value
        for key, value in form_data.items()
        if key not in SECRET_FIELDS and isinstance(value, str)
    }


def render(
    request: Request,
    template: str,
    context: Optional[dict] = None,
    status_code: int = 200,
) -> HTMLResponse:
    base_context = {"errors": [], "form_values": {}}
    base_context.update(context or {})
    return templates.TemplateResponse(
        request, template, base_context, status_code=status_code
    )
