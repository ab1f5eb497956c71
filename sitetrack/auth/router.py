from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..models.models import User, RevokedToken
from ..schemas.auth import SignInRequest, TokenResponse, SessionResponse, SessionUser
from ..services.realtime import notify_user
from .security import (
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_settings,
    get_token_payload,
    new_session_id,
    resolve_user,
)
from ..logging import structlog


router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


def _issue_tokens(settings: Settings, user: User, sid: str) -> TokenResponse:
    access, expires = create_access_token(settings, str(user.id), sid)
    refresh, _ = create_refresh_token(settings, str(user.id), sid)
    return TokenResponse(access_token=access, refresh_token=refresh, expires_at=expires)


@router.post("/signin", response_model=TokenResponse)
def signin(req: SignInRequest, request: Request, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = db.query(User).filter(User.email == req.email.lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        logger.info("signin_failed", email=req.email)
        raise HTTPException(status_code=401, detail="Invalid login credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User not active")
    tokens = _issue_tokens(settings, user, new_session_id())
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("signin", user_id=user.id)
    notify_user(request, str(user.id), "auth", {"type": "SIGNED_IN"})
    return tokens


@router.post("/refresh", response_model=TokenResponse)
def refresh(token: str, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    payload = decode_token(settings, token)
    user = resolve_user(db, payload, token_type="refresh")
    # refreshed tokens stay in the same sign-in session
    return _issue_tokens(settings, user, payload.get("sid") or new_session_id())


@router.get("/session", response_model=SessionResponse)
def session(payload: dict = Depends(get_token_payload), db: Session = Depends(get_db)):
    user = resolve_user(db, payload)
    return SessionResponse(
        user=SessionUser.model_validate(user),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )


@router.post("/signout")
def signout(
    request: Request,
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = resolve_user(db, payload)
    db.add(RevokedToken(
        jti=payload["jti"],
        user_id=user.id,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    ))
    # revoking the session id also kills the refresh token issued with this access token
    sid = payload.get("sid")
    if sid:
        db.add(RevokedToken(
            jti=sid,
            user_id=user.id,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=settings.refresh_ttl_seconds),
        ))
    db.commit()
    logger.info("signout", user_id=user.id)
    notify_user(request, str(user.id), "auth", {"type": "SIGNED_OUT"})
    return {"status": "signed_out"}
