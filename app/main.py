import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .auth import PasswordHasher
from .config import settings
from .database import dispose_db, init_db
from .errors import LoginRequired
from .middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from .routes import auth as auth_routes
from .routes import health as health_routes
from .routes import pages as pages_routes
from .sessions import SessionManager, build_session_manager
from .templating import render

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

static_dir = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("%s started", app.title)
    try:
        yield
    finally:
        dispose_db()
        logger.info("%s stopped", app.title)


def _wants_html(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "text/html" in accept or "*/*" in accept


async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if _wants_html(request):
        template_name = "errors/404.html" if exc.status_code == 404 else "errors/generic.html"
        return render(
            request,
            template_name,
            {"detail": exc.detail, "status_code": exc.status_code},
            status_code=exc.status_code,
        )
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled application error", exc_info=exc)
    if _wants_html(request):
        return render(
            request,
            "errors/generic.html",
            {"detail": "Terjadi kesalahan sistem", "status_code": 500},
            status_code=500,
        )
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


def create_app(session_manager: Optional[SessionManager] = None) -> FastAPI:
    """Build the app from the process-wide settings.

    The database engine and templates are bound to the same settings at import
    time; only the session manager can be swapped, e.g. for a shared backend.
    """
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    app.state.settings = settings
    app.state.session_manager = session_manager or build_session_manager(settings)
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    # The cookie only carries the opaque session id; the session itself lives server-side.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_lifetime_seconds,
        https_only=False,
    )
    app.add_middleware(RateLimitMiddleware, limit=settings.rate_limit)
    app.add_middleware(SecurityHeadersMiddleware)

    app.mount("/static", StaticFiles(directory=static_dir), name="static")

    app.add_exception_handler(LoginRequired, login_required_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(pages_routes.router)
    app.include_router(auth_routes.router)
    app.include_router(health_routes.router)
    return app


app = create_app()
