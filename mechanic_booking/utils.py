import logging
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .policy import ANONYMOUS, Principal

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_jwt(data: dict, expires_minutes: int = 43200) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    secret = os.getenv("SECRET_KEY")
    algorithm = os.getenv("ALGORITHM", "HS256")
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_principal(token: Optional[str]) -> Principal:
    """Principal named by the token's ``sub`` claim, or anonymous if it does not verify."""
    if not token:
        return ANONYMOUS
    secret = os.getenv("SECRET_KEY")
    algorithm = os.getenv("ALGORITHM", "HS256")
    audience = os.getenv("JWT_AUDIENCE")
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
        return Principal(uuid.UUID(payload["sub"]))
    except (JWTError, KeyError, TypeError, ValueError) as e:
        logger.info("rejected bearer token: %s", e)
        return ANONYMOUS


def get_principal(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Principal:
    return decode_principal(credentials.credentials if credentials else None)
