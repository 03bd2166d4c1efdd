# repos/helper.py
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection


class JSONEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def utcnow() -> datetime:
    # BSON dates come back naive, so everything we store is naive UTC too
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_object_id(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def stringify_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc["_id"] = str(doc["_id"])
    return doc


def count_by_month(collection: Collection, field: str, since: datetime) -> List[Dict[str, Any]]:
    """``[{"month": "YYYY-MM", "count": n}]`` for documents whose ``field`` is on or after ``since``."""
    pipeline = [
        {"$match": {field: {"$gte": since}}},
        {"$group": {
            "_id": {"$dateToString": {"format": "%Y-%m", "date": f"${field}"}},
            "count": {"$sum": 1},
        }},
        {"$sort": {"_id": 1}},
    ]
    return [{"month": doc["_id"], "count": doc["count"]} for doc in collection.aggregate(pipeline)]
