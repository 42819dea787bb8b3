"""Auth router: login, logout, current user."""
import time as _time
import secrets
from fastapi import APIRouter, HTTPException, Header, Depends, Request
from pydantic import BaseModel
from typing import Optional
from rosterlib.store import ROLE_FILE_TYPES
from ..dependencies import (
    get_store, require_auth, _logger, _sessions, _failed_logins, _LOCKOUT_WINDOW,
    _LOCKOUT_MAX, _TOKEN_EXPIRE_HOURS, limiter,
)

router = APIRouter()


class LoginBody(BaseModel):
    username: str
    password: str


@router.post("/api/auth/login", tags=["Auth"], summary="Login", description="Authenticate with username and password. Returns a session token valid for 8 hours (configurable via TOKEN_EXPIRE_HOURS).")
@limiter.limit("5/minute")
def login(request: Request, body: LoginBody):
    """Verify username+password against config/users.json."""
    client_ip = request.client.host if request.client else 'unknown'
    now = _time.time()
    username = body.username

    # ── Brute-force check ──────────────────────────────────────
    timestamps = _failed_logins.get(username, [])
    timestamps = [t for t in timestamps if now - t < _LOCKOUT_WINDOW]
    _failed_logins[username] = timestamps
    if len(timestamps) >= _LOCKOUT_MAX:
        _logger.warning(
            "AUTH LOCKOUT | ip=%s username=%s attempts=%d", client_ip, username, len(timestamps)
        )
        raise HTTPException(
            status_code=429,
            detail="Too many failed attempts. Please wait 15 minutes."
        )

    user = get_store().verify_user_password(username, body.password)
    if user is None:
        _failed_logins[username] = timestamps + [now]
        _logger.warning(
            "AUTH LOGIN_FAIL | ip=%s username=%s", client_ip, username
        )
        raise HTTPException(status_code=401, detail="Invalid login or password")

    _failed_logins.pop(username, None)
    _logger.info("AUTH LOGIN_OK | ip=%s username=%s role=%s", client_ip, username, user['role'])

    token = secrets.token_hex(32)
    expires_at = now + _TOKEN_EXPIRE_HOURS * 3600
    _sessions[token] = {**user, 'expires_at': expires_at}
    return {
        "ok": True,
        "token": token,
        "user": user,
        "expires_at": expires_at,
    }


@router.post("/api/auth/logout", tags=["Auth"], summary="Logout", description="Invalidate the current session token.")
def logout(x_auth_token: Optional[str] = Header(None)):
    """Invalidate the session token."""
    if x_auth_token and x_auth_token in _sessions:
        del _sessions[x_auth_token]
    return {"ok": True}


@router.get("/api/auth/me", tags=["Auth"], summary="Current user", description="Return the logged-in user and the file types their role may read.")
def me(user: dict = Depends(require_auth)):
    info = {k: v for k, v in user.items() if k != 'expires_at'}
    info['file_types'] = list(ROLE_FILE_TYPES.get(user.get('role', ''), ()))
    return info
