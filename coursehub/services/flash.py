# services/flash.py
import json
from typing import Any, Dict, Optional

from redis.asyncio import Redis

from repos.helper import JSONEncoder
from services.cache_keys import flash_key

FLASH_TTL = 60 * 5  # 5 min


async def flash(r: Redis, user_id: str, **data: Any) -> None:
    """Merge ``data`` into the user's pending flash bag."""
    key = flash_key(user_id)
    current = await r.get(key)
    bag: Dict[str, Any] = json.loads(current) if current else {}
    bag.update(data)
    await r.set(key, json.dumps(bag, cls=JSONEncoder), ex=FLASH_TTL)


async def pop_flash(r: Redis, user_id: str) -> Optional[Dict[str, Any]]:
    key = flash_key(user_id)
    raw = await r.get(key)
    if not raw:
        return None
    await r.delete(key)
    return json.loads(raw)
