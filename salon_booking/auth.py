import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from .models import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: stable identity plus system role"""

    user_id: str
    role: str
    email: Optional[str] = None


def create_access_token(
    user_id: str, role: str, expires_delta: Optional[timedelta] = None, **claims: Any
) -> str:
    """
    Create a signed JWT for user_id

    Args:
        user_id: Stable identity, stored in the "sub" claim
        role: System role claim (Admin, Staff, Client)
        expires_delta: Token lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": user_id, "role": role, "exp": expire, **claims}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def authenticate_token(token: Optional[str]) -> dict[str, Any]:
    """Verify a bearer token and return its claims"""
    if not token:
        raise AuthenticationError(
            "Not authenticated. Please provide a valid Bearer token in the Authorization header."
        )

    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ JWT verification failed: {e}")
        raise AuthenticationError("Invalid or expired token") from e

    if not payload.get("sub"):
        logger.error(f"❌ Token missing identity claim. Available claims: {list(payload.keys())}")
        raise AuthenticationError("Invalid token claims")
    return payload


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the bearer token to an active user"""
    claims = authenticate_token(credentials.credentials if credentials else None)
    user_id = claims["sub"]

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"⚠️ Token for unknown or inactive user {user_id}")
        raise AuthenticationError("Authentication failed")

    logger.debug(f"✅ User authenticated: {user.email}")
    return Principal(user_id=user.id, role=user.role, email=user.email)


def require_roles(*roles: str):
    """Dependency factory: the caller must hold one of ``roles``"""

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            logger.warning(
                f"⚠️ User {principal.user_id} with role {principal.role} denied; requires {roles}"
            )
            raise AuthorizationError("You do not have permission to perform this action")
        return principal

    return dependency
