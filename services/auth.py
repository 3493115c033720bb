# services/auth.py
from datetime import datetime, timedelta, timezone
import logging
import re
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

import crud
from config.settings import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY
from database import get_db
from models.user import User

logger = logging.getLogger(__name__)

# pbkdf2 is pure passlib; no native bcrypt build to keep in step with passlib
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Bearer support for API clients; we raise our own 401 below
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/signin", auto_error=False)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# ========================
# Validation helpers
# ========================

def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def is_valid_password(password: str) -> bool:
    """At least 8 chars with one uppercase, one lowercase and one digit."""
    p = password or ""
    return (
        len(p) >= 8
        and any(ch.isupper() for ch in p)
        and any(ch.islower() for ch in p)
        and any(ch.isdigit() for ch in p)
    )

# ========================
# Password helpers
# ========================

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

# ========================
# JWT helpers
# ========================

def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"iat": int(now.timestamp()), "exp": int(expire.timestamp())})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def token_for_user(user: User) -> str:
    return create_access_token({"sub": str(user.id), "email": user.email, "name": user.name})


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode & verify JWT. Raises HTTPException(401) on failure.
    """
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid or expired token")

# ========================
# User dependencies
# ========================

def resolve_owner(token: Optional[str]) -> int:
    """Bearer token -> user id. The id is trusted as-is by everything downstream."""
    if not token:
        raise _unauthorized()
    payload = decode_access_token(token)
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token subject")


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    user_id = resolve_owner(token)
    user = crud.get_user(db, user_id)
    if not user:
        # token outlived its account
        logger.info("token for unknown user_id=%s", user_id)
        raise _unauthorized()
    return user
