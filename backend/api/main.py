"""FastAPI application for the Dealer Portal roster API."""
import os
import sys
import time as _startup_time_module
from contextlib import asynccontextmanager
from dotenv import load_dotenv

_APP_START_TIME = _startup_time_module.time()

# Load .env file if present
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

# Add parent dir to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from slowapi import _rate_limit_exceeded_handler  # noqa: E402
from slowapi.errors import RateLimitExceeded  # noqa: E402

# ── Import shared dependencies ──────────────────────────────────
# These are re-exported here so tests can do `from api.main import _sessions`
from .dependencies import (  # noqa: E402
    _sessions,
    _is_token_valid,
    get_current_user,
    require_auth,
    require_admin,
    get_store,
    _logger,
    limiter,
    purge_expired_sessions,
    purge_stale_failed_logins,
)

# ── Config ──────────────────────────────────────────────────────
DATA_PATH = os.environ.get(
    'ROSTER_DATA_PATH',
    os.path.join(os.path.dirname(__file__), '..', '..', 'data')
)
DATA_PATH = os.path.normpath(DATA_PATH)

# CORS origins from env
_raw_origins = os.environ.get('ALLOWED_ORIGINS', '')
ALLOWED_ORIGINS = (
    [o.strip() for o in _raw_origins.split(',') if o.strip()]
    or ['http://localhost:5173', 'http://localhost:8000']
)

_OPENAPI_TAGS = [
    {"name": "Health", "description": "System health and version info"},
    {"name": "Auth", "description": "Authentication: login and logout"},
    {"name": "Countries", "description": "Countries and the roster months available for them"},
    {"name": "Schedule", "description": "Shift calendars and working hours"},
    {"name": "Statistics", "description": "Daily mistakes and mistake statistics"},
    {"name": "Config", "description": "Visible months and display settings"},
    {"name": "Export", "description": "Roster downloads (CSV, XLSX)"},
]

async def _periodic_cleanup():
    """Background task: purge expired sessions and stale failed-login entries every 5 minutes."""
    import asyncio
    while True:
        await asyncio.sleep(300)
        try:
            sess = purge_expired_sessions()
            logins = purge_stale_failed_logins()
            if sess or logins:
                _logger.debug("Periodic cleanup: removed %d expired sessions, %d stale lockout entries", sess, logins)
        except Exception as _exc:  # pragma: no cover
            _logger.warning("Periodic cleanup error: %s", _exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    import asyncio
    if not os.path.isdir(DATA_PATH):
        _logger.warning("Data folder not found: %s", DATA_PATH)
    cleanup_task = asyncio.create_task(_periodic_cleanup())
    yield
    cleanup_task.cancel()
    _logger.info("Roster API shutting down")


app = FastAPI(
    lifespan=lifespan,
    title="Dealer Portal API",
    description=(
        "REST API serving parsed roster exports (shifts, working hours, mistakes).\n\n"
        "## Authentication\n"
        "Most endpoints require an `x-auth-token` header obtained from `POST /api/auth/login`.\n\n"
        "## Roles\n"
        "- **dealer** / **sm** – own rows only\n"
        "- **operation** – every person of their country\n"
        "- **admin** – also edits visible months\n"
        "- **global_admin** – every country\n"
    ),
    version="1.2.0",
    openapi_tags=_OPENAPI_TAGS,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "x-auth-token", "Authorization"],
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if os.environ.get('ROSTER_HSTS', '').lower() in ('1', 'true', 'yes'):
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Flatten Pydantic validation errors into one readable message."""
    _TYPE_MSGS = {
        "missing": "Field required",
        "int_parsing": "Must be an integer",
        "string_too_short": "Input too short",
        "string_too_long": "Input too long",
        "greater_than_equal": "Value too small",
        "less_than_equal": "Value too large",
        "literal_error": "Unsupported value",
    }
    errors = []
    for e in exc.errors():
        field = ".".join(str(loc) for loc in e.get("loc", []) if loc not in ("body", "query", "path"))
        etype = e.get("type", "")
        msg = _TYPE_MSGS.get(etype, e.get("msg", "Invalid value"))
        if field:
            errors.append(f"{field}: {msg}")
        else:
            errors.append(msg)
    detail = "; ".join(errors) if errors else "Invalid input"
    return JSONResponse(status_code=422, content={"detail": detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions, log with details, return sanitized 500."""
    import traceback
    _logger.error(
        "Unhandled exception: %s %s | %s | %s",
        request.method, request.url.path,
        type(exc).__name__,
        traceback.format_exc().splitlines()[-1],
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. Please try again."},
    )


# ── Public paths (no auth required) ────────────────────────────
_PUBLIC_PATHS = {'/api/auth/login', '/api/auth/logout', '/api', '/api/health', '/api/version', '/'}


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request as structured JSON with timing info and request-ID."""
    import time as _t
    import uuid as _uuid
    import json as _json_mod
    from datetime import datetime as _dt2, timezone as _tz2
    req_id = _uuid.uuid4().hex[:8]
    start = _t.time()
    response = await call_next(request)
    duration_ms = round((_t.time() - start) * 1000)
    token = request.headers.get('x-auth-token') or request.query_params.get('token')
    user = _sessions.get(token, {}).get('NAME', '-') if token else '-'
    now = _dt2.now(_tz2.utc)
    ts = now.strftime('%Y-%m-%dT%H:%M:%S.') + f"{now.microsecond // 1000:03d}Z"
    entry = {
        "timestamp": ts,
        "req_id": req_id,
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "user": user,
    }
    _logger.info(_json_mod.dumps(entry, ensure_ascii=False))
    response.headers["X-Request-ID"] = req_id
    return response


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    """Require authentication for all /api/* endpoints except public ones."""
    path = request.url.path
    method = request.method
    client_ip = request.client.host if request.client else 'unknown'

    if path in _PUBLIC_PATHS or not path.startswith('/api/'):
        return await call_next(request)
    token = request.headers.get('x-auth-token') or request.query_params.get('token')
    if not token or not _is_token_valid(token):
        _logger.warning("AUTH 401 | ip=%s method=%s path=%s", client_ip, method, path)
        return JSONResponse(
            status_code=401,
            content={"detail": "Not authenticated"}
        )
    response = await call_next(request)
    if response.status_code == 403:
        user_info = _sessions.get(token, {})
        _logger.warning(
            "AUTH 403 | ip=%s method=%s path=%s user=%s",
            client_ip, method, path, user_info.get('NAME', '?')
        )
    if method in ('POST', 'PUT', 'DELETE') and response.status_code < 400:
        user_info = _sessions.get(token, {})
        _logger.info(
            "WRITE %s | ip=%s path=%s user=%s",
            method, client_ip, path, user_info.get('NAME', '?')
        )
    return response


# ── Include routers ─────────────────────────────────────────────
from .routers import auth, rosters, settings, exports  # noqa: E402

app.include_router(auth.router)
app.include_router(rosters.router)
app.include_router(settings.router)
app.include_router(exports.router)


# ── Routes ──────────────────────────────────────────────────────

_API_VERSION = "1.2.0"


@app.get(
    "/api/health",
    tags=["Health"],
    summary="Health check",
    description="Returns service status, API version, uptime in seconds and data folder state.",
)
def health():
    """Health check endpoint, public, no auth required."""
    import time as _t
    data_status = "ok" if os.path.isdir(DATA_PATH) else "missing"
    return {
        "status": "ok",
        "version": _API_VERSION,
        "uptime_seconds": round(_t.time() - _APP_START_TIME, 1),
        "data": {"status": data_status},
    }


@app.get(
    "/api/version",
    tags=["Health"],
    summary="API version",
    description="Returns the current API version string.",
)
def version():
    """Return current API version, public, no auth required."""
    return {"version": _API_VERSION, "service": "Dealer Portal API"}


@app.get("/api", tags=["Health"], summary="API root", description="Returns basic service info.")
def root():
    return {"service": "Dealer Portal API", "version": _API_VERSION, "backend": "csv"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
