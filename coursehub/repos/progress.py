# repos/progress.py
from typing import Dict, Any, Optional, List
from datetime import datetime, timedelta
from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from repos.helper import utcnow, stringify_id, to_object_id, count_by_month

EPOCH = datetime(1970, 1, 1)

# Fields the tracker is allowed to write back
MUTABLE_FIELDS = (
    "status", "progress_percentage", "completed_lessons", "accessed_lessons",
    "course_lesson_id", "started_at", "last_accessed_at", "completed_at",
)

def ensure_indexes(db: Database) -> None:
    db.user_course_progress.create_index([("user_id", ASCENDING), ("course_id", ASCENDING)], unique=True, name="user_course_unique")
    db.user_course_progress.create_index([("user_id", ASCENDING), ("last_accessed_at", DESCENDING)], name="user_last_accessed")
    db.user_course_progress.create_index([("course_id", ASCENDING), ("status", ASCENDING)], name="by_course_status")

def new_progress(user_id: str, course_id: str, ts: datetime) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "course_id": course_id,
        "course_lesson_id": None,
        "status": "not_started",
        "progress_percentage": 0,
        "started_at": ts,
        "last_accessed_at": ts,
        "completed_at": None,
        "completed_lessons": [],
        "accessed_lessons": [],
        "version": 0,
        "created_at": ts,
        "updated_at": ts,
    }

def get_user_course_progress(db: Database, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    return stringify_id(db.user_course_progress.find_one({"user_id": user_id, "course_id": course_id}))

def create_progress(db: Database, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    """Insert a fresh enrollment; returns None when the pair is already enrolled."""
    doc = new_progress(user_id, course_id, utcnow())
    try:
        result = db.user_course_progress.insert_one(doc)
    except DuplicateKeyError:
        return None
    doc["_id"] = str(result.inserted_id)
    return doc

def save_progress(db: Database, doc: Dict[str, Any]) -> bool:
    """Compare-and-swap write of the tracker fields.

    Succeeds only if nobody else wrote the document since ``doc`` was read;
    on success ``doc['version']`` is bumped in place.
    """
    version = int(doc.get("version", 0))
    patch = {k: doc.get(k) for k in MUTABLE_FIELDS}
    patch["updated_at"] = utcnow()
    res = db.user_course_progress.update_one(
        {"_id": to_object_id(doc["_id"]), "version": version},
        {"$set": patch, "$inc": {"version": 1}},
    )
    if res.matched_count == 0:
        return False
    doc["version"] = version + 1
    doc["updated_at"] = patch["updated_at"]
    return True

def list_user_progress(db: Database, user_id: str) -> List[Dict[str, Any]]:
    cursor = db.user_course_progress.find({"user_id": user_id}).sort([("last_accessed_at", DESCENDING)])
    return [stringify_id(doc) for doc in cursor]

def progress_for_courses(db: Database, user_id: str, course_ids: List[str]) -> Dict[str, Dict[str, Any]]:
    cursor = db.user_course_progress.find({"user_id": user_id, "course_id": {"$in": list(course_ids)}})
    return {doc["course_id"]: stringify_id(doc) for doc in cursor}

def delete_user_progress(db: Database, user_id: str) -> int:
    return db.user_course_progress.delete_many({"user_id": user_id}).deleted_count

# ---------------------------
# Reporting counts
# ---------------------------

ENGAGEMENT_FIELDS = ("enrollment_count", "completion_count", "recent_activity")

def engagement_counts(db: Database, course_ids: List[str], *, recent_days: int = 30,
                      now: Optional[datetime] = None) -> Dict[str, Dict[str, int]]:
    """Enrollment, completion and recent-activity counts per course, in one pass.

    Courses without any progress rows are absent from the result.
    """
    now = now or utcnow()
    since = now - timedelta(days=recent_days)
    pipeline = [
        {"$match": {"course_id": {"$in": list(course_ids)}}},
        {"$group": {
            "_id": "$course_id",
            "enrollment_count": {"$sum": {"$cond": [{"$ne": ["$status", "cancelled"]}, 1, 0]}},
            "completion_count": {"$sum": {"$cond": [{"$eq": ["$status", "completed"]}, 1, 0]}},
            "recent_activity": {"$sum": {"$cond": [
                {"$gte": [{"$ifNull": ["$last_accessed_at", EPOCH]}, since]}, 1, 0,
            ]}},
        }},
    ]
    return {
        doc["_id"]: {field: int(doc[field]) for field in ENGAGEMENT_FIELDS}
        for doc in db.user_course_progress.aggregate(pipeline)
    }

def count_progress(db: Database, query: Optional[Dict[str, Any]] = None) -> int:
    return db.user_course_progress.count_documents(query or {})

def enrollments_by_month(db: Database, since: datetime) -> List[Dict[str, Any]]:
    return count_by_month(db.user_course_progress, "created_at", since)
