# auth/jwt.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from jwt import encode, decode, ExpiredSignatureError, InvalidTokenError
from uuid import uuid4
from config import settings
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"

def _create_token(data: Dict[str, Any], expires_delta: timedelta, token_type: str) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire, "jti": str(uuid4()), "type": token_type})
    return encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)

def create_access_token(data: Dict[str, Any]) -> str:
    return _create_token(data, timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES), ACCESS)

def create_refresh_token(data: Dict[str, Any]) -> str:
    return _create_token(data, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS), REFRESH)

def decode_token(token: str) -> dict:
    try:
        return decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        logger.warning("Attempt to use expired token")
        raise ValueError("Token expired")
    except InvalidTokenError:
        logger.warning("Attempt to use invalid token")
        raise ValueError("Invalid token")

def seconds_until_expiry(payload: Dict[str, Any]) -> int:
    """Remaining lifetime of a decoded token, at least one second so it can be used as a Redis TTL."""
    return max(1, int(payload["exp"]) - int(datetime.now(timezone.utc).timestamp()))
