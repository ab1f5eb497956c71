import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..models.models import User, RevokedToken


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def _create_token(settings: Settings, sub: str, ttl_seconds: int, extra: Optional[dict] = None) -> Tuple[str, datetime]:
    now = datetime.now(tz=timezone.utc)
    expires = now + timedelta(seconds=ttl_seconds)
    payload = {
        "sub": sub,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if extra:
        payload.update(extra)
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires


def new_session_id() -> str:
    return str(uuid.uuid4())


def create_access_token(settings: Settings, user_id: str, sid: str) -> Tuple[str, datetime]:
    return _create_token(settings, user_id, settings.jwt_ttl_seconds, extra={"type": "access", "sid": sid})


def create_refresh_token(settings: Settings, user_id: str, sid: str) -> Tuple[str, datetime]:
    return _create_token(settings, user_id, settings.refresh_ttl_seconds, extra={"type": "refresh", "sid": sid})


def decode_token(settings: Settings, token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def is_revoked(db: Session, jti: Optional[str]) -> bool:
    if not jti:
        return True
    return db.get(RevokedToken, jti) is not None


def session_revoked(db: Session, payload: dict) -> bool:
    """True when the token itself or the sign-in session it belongs to was revoked."""
    return is_revoked(db, payload.get("jti")) or is_revoked(db, payload.get("sid"))


def resolve_user(db: Session, payload: dict, token_type: str = "access") -> User:
    """Map a decoded token payload to an active user, or raise 401."""
    if payload.get("type") != token_type:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    if session_revoked(db, payload):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session signed out")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid subject")
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")
    return user


def get_token_payload(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    settings: Settings = Depends(get_settings),
) -> dict:
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return decode_token(settings, creds.credentials)


def get_current_user(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
) -> User:
    return resolve_user(db, payload)
