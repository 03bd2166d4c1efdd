# auth/dependencies.py
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from fastapi.concurrency import run_in_threadpool
from redis.asyncio import Redis
from pymongo.database import Database
import logging

from deps import get_redis, get_db
from auth.jwt import decode_token, ACCESS
from repos import users
from services.cache_keys import blacklisted_jti_key, user_session_key

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

async def _resolve_user(token: str, r: Redis, db: Database) -> dict:
    try:
        payload = decode_token(token)
    except ValueError as e:
        raise _unauthorized(str(e))

    if payload.get("type") != ACCESS:
        raise _unauthorized("Invalid token type")

    if await r.get(blacklisted_jti_key(payload.get("jti", ""))):
        raise _unauthorized("Token revoked")

    if not await r.get(user_session_key(payload["sub"])):
        raise _unauthorized("Session expired")

    user = await run_in_threadpool(users.get_user_by_id, db, payload["sub"])
    if not user:
        logger.warning(f"Token for unknown user {payload['sub']}")
        raise _unauthorized("User not found")

    user["_id"] = str(user["_id"])
    return user

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    r: Redis = Depends(get_redis),
    db: Database = Depends(get_db)
):
    return await _resolve_user(token, r, db)

async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    r: Redis = Depends(get_redis),
    db: Database = Depends(get_db)
) -> Optional[dict]:
    """Like ``get_current_user`` but anonymous visitors get None instead of a 401."""
    if not token:
        return None
    return await _resolve_user(token, r, db)

def require_role(*roles: str):
    async def role_checker(user=Depends(get_current_user)):
        if user["role"] not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user
    return role_checker
