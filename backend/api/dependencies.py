"""
Shared dependencies for the Dealer Portal API.
Extracted from main.py for modular router support.
"""
import os
import logging
import logging.handlers
import time as _time
import traceback

from fastapi import HTTPException, Header, Depends, Request
from typing import Optional
from rosterlib.date_utils import normalize_month_name
from rosterlib.store import RosterStore, ROLE_FILE_TYPES
from slowapi import Limiter
from slowapi.util import get_remote_address

# ── Structured JSON Logging setup ───────────────────────────────
import json as _json
from datetime import datetime as _dt, timezone as _tz

class _JsonFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _dt.fromtimestamp(record.created, tz=_tz.utc).strftime('%Y-%m-%dT%H:%M:%S.') + f"{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return _json.dumps(entry, ensure_ascii=False)

_log_file = os.environ.get('ROSTER_LOG_FILE', '/tmp/roster-api.log')
_handler = logging.handlers.RotatingFileHandler(
    _log_file, maxBytes=10 * 1024 * 1024, backupCount=3
)
_handler.setFormatter(_JsonFormatter())

_logger = logging.getLogger('rosterapi')
# Log level configurable via ENV
_log_level_str = os.environ.get('ROSTER_LOG_LEVEL', 'INFO').upper()
_log_level = getattr(logging, _log_level_str, logging.INFO)
_logger.setLevel(_log_level)
_logger.addHandler(_handler)
_stderr_handler = logging.StreamHandler()
_stderr_handler.setFormatter(_JsonFormatter())
_logger.addHandler(_stderr_handler)

# rosterlib logs through the same handlers
_lib_logger = logging.getLogger('rosterlib')
_lib_logger.setLevel(_log_level)
_lib_logger.addHandler(_handler)

# ── Rate Limiter ─────────────────────────────────────────────────
limiter = Limiter(key_func=get_remote_address, default_limits=["200/minute"])

# ── Session store ────────────────────────────────────────────────
# NOTE: In-process dict, not safe for multi-worker deployments.
_sessions: dict[str, dict] = {}

# Token lifetime
_TOKEN_EXPIRE_HOURS = float(os.environ.get('TOKEN_EXPIRE_HOURS', '8'))

# Brute-force tracking
_failed_logins: dict[str, list] = {}
_LOCKOUT_WINDOW = 15 * 60
_LOCKOUT_MAX = 5

# Role hierarchy; dealer and sm see only their own rows
_ROLE_LEVEL = {'dealer': 1, 'sm': 1, 'operation': 2, 'admin': 3, 'global_admin': 4}
PERSONAL_ROLES = ('dealer', 'sm')


def _is_token_valid(token: str) -> bool:
    """Return True if the token exists and has not expired."""
    session = _sessions.get(token)
    if not session:
        return False
    expires_at = session.get('expires_at')
    if expires_at is not None and _time.time() > expires_at:
        del _sessions[token]
        return False
    return True


def get_current_user(
    request: Request,
    x_auth_token: Optional[str] = Header(None),
) -> Optional[dict]:
    """Return user dict for the given token, or None."""
    token = x_auth_token or request.query_params.get('token')
    if token and _is_token_valid(token):
        return _sessions[token]
    return None


def require_auth(user: Optional[dict] = Depends(get_current_user)) -> dict:
    """Dependency: requires any authenticated user."""
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_admin(user: Optional[dict] = Depends(get_current_user)) -> dict:
    """Dependency: requires admin or global_admin."""
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if _ROLE_LEVEL.get(user.get('role', 'dealer'), 1) < _ROLE_LEVEL['admin']:
        raise HTTPException(status_code=403, detail="Admin role required")
    return user


def get_store() -> RosterStore:
    """Get a store using the current DATA_PATH from main module."""
    import api.main as _main
    return RosterStore(_main.DATA_PATH)


def personal_name(user: dict) -> Optional[str]:
    """Full name to scope roster rows to, or None for roles that see everyone."""
    if user.get('role') in PERSONAL_ROLES:
        return user.get('full_name') or ''
    return None


def check_country_access(user: dict, country_id: str) -> None:
    """Only global_admin may read countries other than their own."""
    if user.get('role') == 'global_admin':
        return
    if str(user.get('country_id')) != str(country_id):
        raise HTTPException(status_code=403, detail="No access to this country")


def check_file_access(user: dict, file_type: str) -> None:
    if file_type not in ROLE_FILE_TYPES.get(user.get('role', ''), ()):
        raise HTTPException(
            status_code=403,
            detail=f"Role '{user.get('role')}' may not read {file_type}",
        )


def country_name(user: dict, country_id: str) -> str:
    """Folder name of a country the user may read; 403/404 otherwise."""
    check_country_access(user, country_id)
    country = get_store().get_country(country_id)
    if country is None:
        raise HTTPException(status_code=404, detail=f"Country {country_id} not found")
    return country['name']


def month_name(month: str) -> str:
    """Canonical English month name, or 400."""
    try:
        return normalize_month_name(month)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid month: {month!r}")


def purge_expired_sessions() -> int:
    """Remove all expired sessions from the in-memory store. Returns count removed."""
    now = _time.time()
    to_remove = [
        tok for tok, s in list(_sessions.items())
        if s.get('expires_at') is not None and now > s['expires_at']
    ]
    for tok in to_remove:
        _sessions.pop(tok, None)
    return len(to_remove)


def purge_stale_failed_logins() -> int:
    """Remove username entries whose timestamps have all expired. Returns count removed."""
    now = _time.time()
    stale = [
        uname for uname, timestamps in list(_failed_logins.items())
        if not any(now - t < _LOCKOUT_WINDOW for t in timestamps)
    ]
    for uname in stale:
        _failed_logins.pop(uname, None)
    return len(stale)


def _sanitize_500(e: Exception, context: str = '') -> HTTPException:
    """Log full exception, return sanitized 500."""
    _logger.error(
        "500 error context=%s type=%s msg=%s trace=%s",
        context, type(e).__name__, str(e),
        traceback.format_exc().splitlines()[-1],
    )
    return HTTPException(
        status_code=500,
        detail="Internal server error. Please try again.",
    )
