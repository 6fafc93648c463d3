"""
Principal decoding.

Tokens are issued by the surrounding identity service; this module only
verifies them and maps `sub` to a local user id. `create_access_token` is
kept for tooling and tests that need to mint a token for a known user.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from orderdesk.config import settings
from orderdesk.database import get_db
from orderdesk.exceptions import AuthenticationError
from orderdesk.models.user import User

logger = logging.getLogger(__name__)

# OAuth2 scheme for token validation; missing tokens raise our own 401
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None, **claims) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode = {**claims, "sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> int:
    """Return the user id carried in the token's `sub` claim."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except ExpiredSignatureError:
        logger.info("Token expired")
        raise AuthenticationError("Token has expired") from None
    except JWTError as e:
        logger.warning(f"JWT decoding failed: {str(e)}")
        raise AuthenticationError("Invalid token") from None

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        logger.warning("Token is missing a numeric 'sub' claim")
        raise AuthenticationError("Token does not contain a valid 'sub' field.")
    return int(subject)


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency resolving the bearer token to an active user."""
    if not token:
        raise AuthenticationError("Not authenticated")

    user_id = decode_access_token(token)
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()
    if user is None or not user.is_active:
        logger.warning(f"Token subject {user_id} does not match an active user")
        raise AuthenticationError()
    return user
