"""FastAPI application entry point."""

import secrets
import time
import logging
import structlog
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.config import get_settings
from app.database import get_db, init_db
from app.services.bonus_codes import bonus_code_counts, list_bonus_codes

# Ensure structlog has a sink in container/runtime logs.
logging.basicConfig(level=logging.INFO, format="%(message)s")

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()
settings = get_settings()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Bonus Drops", version=VERSION)

    # Ensure storage directory exists for the SQLite file
    settings.storage_dir.mkdir(parents=True, exist_ok=True)

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down Bonus Drops")


# Create FastAPI app
app = FastAPI(
    title="Bonus Drops",
    description="Rainbet bonus code feed and admin backend",
    version=VERSION,
    lifespan=lifespan,
)

# GET listings feed the public site; everything else under /api needs a session.
PUBLIC_GET_PATHS = {"/api/bonus-codes", "/api/bonus-codes/", "/api/bonus-codes/active"}


def _is_public_path(method: str, path: str) -> bool:
    if path in {"/health", "/login", "/api/telegram/webhook"}:
        return True
    if method == "GET" and path in PUBLIC_GET_PATHS:
        return True
    return False


def _authenticate_user(username: str, password: str) -> bool:
    """Validate credentials against configured users."""
    user = username.strip()
    if not user:
        return False

    users = settings.auth_users
    # Constant-time username/password checks.
    for candidate_user, candidate_password in users.items():
        username_ok = secrets.compare_digest(user, str(candidate_user).strip())
        password_ok = secrets.compare_digest(password, str(candidate_password))
        if username_ok and password_ok:
            return True
    return False


class AuthenticationRequiredMiddleware(BaseHTTPMiddleware):
    """Gate admin pages and API routes behind a simple session login."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        path = request.url.path

        if not settings.auth_enabled or _is_public_path(request.method, path):
            response = await call_next(request)
            if path.startswith("/api/"):
                elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
                logger.info(
                    "api_request",
                    username="anonymous",
                    method=request.method,
                    path=path,
                    status_code=response.status_code,
                    duration_ms=elapsed_ms,
                )
            return response

        session = request.scope.get("session")
        is_authenticated = bool(session.get("authenticated")) if isinstance(session, dict) else False
        if is_authenticated:
            response = await call_next(request)
            if path.startswith("/api/"):
                elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
                logger.info(
                    "api_request",
                    username=session.get("username", "unknown"),
                    method=request.method,
                    path=path,
                    status_code=response.status_code,
                    duration_ms=elapsed_ms,
                )
            return response

        if path.startswith("/api/"):
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.info(
                "api_request_blocked",
                username="anonymous",
                method=request.method,
                path=path,
                status_code=401,
                duration_ms=elapsed_ms,
            )
            return JSONResponse({"detail": "Authentication required"}, status_code=401)

        next_path = request.url.path
        if request.url.query:
            next_path = f"{next_path}?{request.url.query}"
        login_url = f"/login?next={quote(next_path, safe='/?=&')}"
        return RedirectResponse(url=login_url, status_code=302)


# Add auth middleware first, then session middleware so session data
# is available when auth checks run.
app.add_middleware(AuthenticationRequiredMiddleware)

# Session middleware for cookie-based auth.
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.auth_session_secret or settings.secret_key,
    same_site="lax",
    https_only=not settings.debug,
)

# Setup templates
templates = Jinja2Templates(directory=settings.templates_dir)


# Import and include routers
from app.api import admin, bonus_codes, telegram

app.include_router(bonus_codes.router, prefix="/api/bonus-codes", tags=["bonus-codes"])
app.include_router(telegram.router)  # Already has /api/telegram prefix
app.include_router(admin.router)  # Already has /api/admin prefix


@app.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, next: str = "/admin"):
    """Render login page."""
    if not settings.auth_enabled:
        return RedirectResponse(url="/admin", status_code=302)
    if request.session.get("authenticated"):
        destination = next if next.startswith("/") else "/admin"
        return RedirectResponse(url=destination, status_code=302)
    return templates.TemplateResponse(
        request,
        "auth/login.html",
        {"title": "Login", "next": next, "error": ""},
    )


@app.post("/login", response_class=HTMLResponse)
async def login_submit(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    next: str = Form("/admin"),
):
    """Validate credentials and create session."""
    if not settings.auth_enabled:
        return RedirectResponse(url="/admin", status_code=303)

    if _authenticate_user(username, password):
        request.session.clear()
        request.session["authenticated"] = True
        request.session["username"] = username.strip()
        logger.info("login_success", username=username.strip())
        destination = next if next and next.startswith("/") else "/admin"
        return RedirectResponse(url=destination, status_code=303)

    logger.info("login_failed", username=username.strip())
    return templates.TemplateResponse(
        request,
        "auth/login.html",
        {
            "title": "Login",
            "next": next if next.startswith("/") else "/admin",
            "error": "Invalid username or password.",
        },
        status_code=401,
    )


@app.post("/logout")
async def logout(request: Request):
    """Clear auth session."""
    username = request.session.get("username", "")
    request.session.clear()
    logger.info("logout", username=username or "unknown")
    return RedirectResponse(url="/login", status_code=303)


# Page routes
@app.get("/", response_class=HTMLResponse)
async def dashboard(request: Request):
    """Admin entrypoint."""
    return RedirectResponse(url="/admin")


@app.get("/admin", response_class=HTMLResponse)
async def admin_page(request: Request, db: AsyncSession = Depends(get_db)):
    """Bonus code dashboard."""
    codes = await list_bonus_codes(db)
    counts = await bonus_code_counts(db)
    return templates.TemplateResponse(
        request,
        "admin/index.html",
        {"title": "Admin", "codes": codes, "counts": counts},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION}
