"""
championpool.api.routes.users — Signup, login, logout
======================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy import Engine

from championpool.api.deps import (
    get_config,
    get_credentials,
    get_engine,
    get_identity,
    get_session_manager,
    require_user,
)
from championpool.auth.gate import RequestIdentity
from championpool.auth.passwords import CredentialStore
from championpool.auth.sessions import AuthenticatedUser, SessionManager, SessionToken
from championpool.config import PoolConfig
from championpool.database.engine import run_db
from championpool.services import account_service

router = APIRouter(prefix="/users", tags=["users"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class Credentials(BaseModel):
    name: str
    password: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _set_session_cookie(response: Response, token: SessionToken, cfg: PoolConfig) -> None:
    """``Set-Cookie: <name>=<token>; Max-Age=<N>; Path=/``"""
    response.set_cookie(
        cfg.session_cookie_name,
        token.to_cookie_value(),
        max_age=cfg.session_max_age_seconds,
        path="/",
        httponly=True,
        secure=cfg.secure_cookies,
        samesite="lax",
    )


def _user_dict(user: AuthenticatedUser) -> dict:
    return {"id": user.id, "name": user.name}


# ---------------------------------------------------------------------------
# POST /users/signup
# ---------------------------------------------------------------------------
@router.post("/signup")
async def signup(
    body: Credentials,
    response: Response,
    engine: Engine = Depends(get_engine),
    cfg: PoolConfig = Depends(get_config),
    credentials: CredentialStore = Depends(get_credentials),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Create an account and start a session."""
    user, token = await run_db(
        account_service.signup, engine, credentials, sessions, body.name, body.password
    )
    _set_session_cookie(response, token, cfg)
    return _user_dict(user)


# ---------------------------------------------------------------------------
# POST /users/login
# ---------------------------------------------------------------------------
@router.post("/login")
async def login(
    body: Credentials,
    response: Response,
    engine: Engine = Depends(get_engine),
    cfg: PoolConfig = Depends(get_config),
    credentials: CredentialStore = Depends(get_credentials),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Verify credentials and start a new session."""
    user, token = await run_db(
        account_service.login, engine, credentials, sessions, body.name, body.password
    )
    _set_session_cookie(response, token, cfg)
    return _user_dict(user)


# ---------------------------------------------------------------------------
# POST /users/logout
# ---------------------------------------------------------------------------
@router.post("/logout")
async def logout(
    response: Response,
    identity: RequestIdentity = Depends(get_identity),
    cfg: PoolConfig = Depends(get_config),
    sessions: SessionManager = Depends(get_session_manager),
):
    """End the current session.  Safe to call when already logged out."""
    await run_db(account_service.logout, sessions, identity)
    response.delete_cookie(cfg.session_cookie_name, path="/")
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# GET /users/me
# ---------------------------------------------------------------------------
@router.get("/me")
async def me(
    user: AuthenticatedUser = Depends(require_user),
    engine: Engine = Depends(get_engine),
):
    """Balance and cooldown of the logged-in user."""
    account = await run_db(account_service.get_account, engine, user.id)
    return account.to_dict()
