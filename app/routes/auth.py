from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from ..auth import SESSION_KEY, AuthService, get_auth_service
from ..errors import AuthError, DuplicateEmail, PersistenceError, ValidationFailed
from ..templating import form_values, render

router = APIRouter(tags=["auth"])


def _form_error(request: Request, template: str, form_data, exc, status_code: int) -> HTMLResponse:
    return render(
        request,
        template,
        {"errors": exc.errors, "form_values": form_values(form_data)},
        status_code=status_code,
    )


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request):
    return render(request, "login.html", {"page_title": "Masuk"})


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request):
    return render(request, "register.html", {"page_title": "Daftar"})


@router.post("/login", response_class=HTMLResponse)
async def login(request: Request, auth: AuthService = Depends(get_auth_service)):
    form = await request.form()
    try:
        record = await run_in_threadpool(
            auth.login, form.get("email"), form.get("password")
        )
    except ValidationFailed as exc:
        return _form_error(request, "login.html", form, exc, status.HTTP_400_BAD_REQUEST)
    except AuthError as exc:
        return _form_error(request, "login.html", form, exc, status.HTTP_401_UNAUTHORIZED)
    except PersistenceError as exc:
        return _form_error(
            request, "login.html", form, exc, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    previous = request.session.get(SESSION_KEY)
    if previous:
        await run_in_threadpool(auth.logout, previous)
    request.session[SESSION_KEY] = record.session_id
    return RedirectResponse(url="/halaman-utama", status_code=status.HTTP_303_SEE_OTHER)


@router.post("/register", response_class=HTMLResponse)
async def register(request: Request, auth: AuthService = Depends(get_auth_service)):
    form = await request.form()
    try:
        await run_in_threadpool(
            auth.register,
            form.get("name"),
            form.get("email"),
            form.get("password"),
            form.get("confirm_password"),
        )
    except (ValidationFailed, DuplicateEmail) as exc:
        return _form_error(request, "register.html", form, exc, status.HTTP_400_BAD_REQUEST)
    except PersistenceError as exc:
        return _form_error(
            request, "register.html", form, exc, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/logout")
def logout(request: Request, auth: AuthService = Depends(get_auth_service)):
    auth.logout(request.session.get(SESSION_KEY))
    request.session.clear()
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
