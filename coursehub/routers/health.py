from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from datetime import datetime, timezone
from deps import get_redis, get_db
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from pymongo.database import Database
from pymongo.errors import ConnectionFailure
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"], prefix="/api/v1")

async def _check_redis(r: Redis):
    try:
        await r.ping()
        return "connected", None
    except RedisConnectionError as e:
        logger.warning(f"Redis connection failed: {str(e)}")
        return "disconnected", "Connection failed"
    except Exception as e:
        logger.error(f"Redis health check error: {str(e)}")
        return "disconnected", "Health check failed"

async def _check_mongo(db: Database):
    try:
        await run_in_threadpool(db.command, "ping")
        return "connected", None
    except ConnectionFailure as e:
        logger.warning(f"MongoDB connection failed: {str(e)}")
        return "disconnected", "Connection failed"
    except Exception as e:
        logger.error(f"MongoDB health check error: {str(e)}")
        return "disconnected", "Health check failed"

@router.get("/health", summary="Health Check", description="Check the health status of the application and its dependencies")
async def health_check(r: Redis = Depends(get_redis), db: Database = Depends(get_db)):
    redis_status, redis_error = await _check_redis(r)
    mongo_status, mongo_error = await _check_mongo(db)

    connected = [s == "connected" for s in (redis_status, mongo_status)]
    if all(connected):
        overall_status = "healthy"
    elif any(connected):
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    response = {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "redis": {"status": redis_status, "error": redis_error},
            "mongodb": {"status": mongo_status, "error": mongo_error},
        }
    }

    if overall_status == "unhealthy":
        raise HTTPException(status_code=503, detail=response)
    return response
