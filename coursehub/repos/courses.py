from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING
from typing import Dict, Any, List, Optional, Tuple, Iterable

from repos.helper import utcnow, to_object_id, stringify_id

LESSON_ORDER = [("order", ASCENDING), ("_id", ASCENDING)]

# ---------------------------
# Helpers
# ---------------------------

def with_lesson_totals(course: Dict[str, Any], lessons: List[Dict[str, Any]]) -> Dict[str, Any]:
    duration = 0
    for l in lessons:
        duration += int(l.get("duration_minutes") or 0)
    course["lessons"] = lessons
    course["total_lessons"] = len(lessons)
    course["total_duration"] = duration
    course["duration"] = f"{course.get('duration_weeks', 0)} weeks"
    return course

# ---------------------------
# Indexes
# ---------------------------

def ensure_indexes(db: Database) -> None:
    db.courses.create_index([("slug", ASCENDING)], unique=True, name="course_slug_unique")
    db.courses.create_index([("is_published", ASCENDING), ("order", ASCENDING)])
    db.courses.create_index([("created_at", DESCENDING)])
    db.course_lessons.create_index([("slug", ASCENDING)], unique=True, name="lesson_slug_unique")
    db.course_lessons.create_index([("course_id", ASCENDING), ("order", ASCENDING)], name="by_course_order")

# ---------------------------
# Courses
# ---------------------------

def insert_course(db: Database, data: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow()
    doc = {**data, "created_at": now, "updated_at": now}
    result = db.courses.insert_one(doc)
    doc["_id"] = str(result.inserted_id)
    return doc

def get_course_by_id(db: Database, course_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(course_id)
    if oid is None:
        return None
    return stringify_id(db.courses.find_one({"_id": oid}))

def get_course_by_slug(db: Database, slug: str, *, published_only: bool = False) -> Optional[Dict[str, Any]]:
    query: Dict[str, Any] = {"slug": slug}
    if published_only:
        query["is_published"] = True
    return stringify_id(db.courses.find_one(query))

def course_slug_taken(db: Database, slug: str, exclude_id: Optional[str] = None) -> bool:
    query: Dict[str, Any] = {"slug": slug}
    if exclude_id:
        query["_id"] = {"$ne": to_object_id(exclude_id)}
    return db.courses.find_one(query, {"_id": 1}) is not None

def update_course(db: Database, course_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    patch = {**patch, "updated_at": utcnow()}
    res = db.courses.update_one({"_id": to_object_id(course_id)}, {"$set": patch})
    if res.matched_count == 0:
        return None
    return get_course_by_id(db, course_id)

def delete_course(db: Database, course_id: str) -> bool:
    res = db.courses.delete_one({"_id": to_object_id(course_id)})
    if res.deleted_count == 0:
        return False
    db.course_lessons.delete_many({"course_id": course_id})
    db.user_course_progress.delete_many({"course_id": course_id})
    return True

def list_published_courses(db: Database) -> List[Dict[str, Any]]:
    cursor = db.courses.find({"is_published": True}).sort([("order", ASCENDING), ("_id", ASCENDING)])
    return [stringify_id(doc) for doc in cursor]

def list_published_courses_by_creation(db: Database) -> List[Dict[str, Any]]:
    cursor = db.courses.find({"is_published": True}).sort([("_id", ASCENDING)])
    return [stringify_id(doc) for doc in cursor]

def get_courses_by_ids(db: Database, course_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    oids = [oid for oid in (to_object_id(cid) for cid in course_ids) if oid is not None]
    if not oids:
        return {}
    return {str(doc["_id"]): stringify_id(doc) for doc in db.courses.find({"_id": {"$in": oids}})}

def list_courses_page(db: Database, *, page: int, page_size: int) -> Tuple[int, List[Dict[str, Any]]]:
    total = db.courses.count_documents({})
    cursor = (
        db.courses.find({})
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        .skip((page - 1) * page_size)
        .limit(page_size)
    )
    items = []
    for doc in cursor:
        course_id = str(doc["_id"])
        doc = stringify_id(doc)
        doc["enrollments_count"] = db.user_course_progress.count_documents({"course_id": course_id})
        doc["lessons_count"] = db.course_lessons.count_documents({"course_id": course_id})
        items.append(doc)
    return total, items

def count_courses(db: Database) -> int:
    return db.courses.count_documents({})

def list_all_courses(db: Database, limit: int = 0) -> List[Dict[str, Any]]:
    cursor = db.courses.find({}).sort([("_id", ASCENDING)])
    if limit:
        cursor = cursor.limit(limit)
    return [stringify_id(doc) for doc in cursor]

# ---------------------------
# Lessons
# ---------------------------

def _lesson_query(course_id: str, published_only: bool) -> Dict[str, Any]:
    query: Dict[str, Any] = {"course_id": course_id}
    if published_only:
        query["is_published"] = True
    return query

def list_lessons(db: Database, course_id: str, *, published_only: bool = False) -> List[Dict[str, Any]]:
    cursor = db.course_lessons.find(_lesson_query(course_id, published_only)).sort(LESSON_ORDER)
    return [stringify_id(doc) for doc in cursor]

def lessons_by_course(db: Database, course_ids: List[str], *, published_only: bool = False) -> Dict[str, List[Dict[str, Any]]]:
    query: Dict[str, Any] = {"course_id": {"$in": list(course_ids)}}
    if published_only:
        query["is_published"] = True
    grouped: Dict[str, List[Dict[str, Any]]] = {cid: [] for cid in course_ids}
    for doc in db.course_lessons.find(query).sort(LESSON_ORDER):
        grouped.setdefault(doc["course_id"], []).append(stringify_id(doc))
    return grouped

def get_lesson_by_id(db: Database, lesson_id: str) -> Optional[Dict[str, Any]]:
    oid = to_object_id(lesson_id)
    if oid is None:
        return None
    return stringify_id(db.course_lessons.find_one({"_id": oid}))

def get_lesson_by_slug(db: Database, course_id: str, slug: str, *, published_only: bool = False) -> Optional[Dict[str, Any]]:
    query = _lesson_query(course_id, published_only)
    query["slug"] = slug
    return stringify_id(db.course_lessons.find_one(query))

def lesson_slug_taken(db: Database, slug: str, exclude_id: Optional[str] = None) -> bool:
    query: Dict[str, Any] = {"slug": slug}
    if exclude_id:
        query["_id"] = {"$ne": to_object_id(exclude_id)}
    return db.course_lessons.find_one(query, {"_id": 1}) is not None

def insert_lesson(db: Database, data: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow()
    doc = {"resources": [], **data, "created_at": now, "updated_at": now}
    result = db.course_lessons.insert_one(doc)
    doc["_id"] = str(result.inserted_id)
    return doc

def update_lesson(db: Database, lesson_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    patch = {**patch, "updated_at": utcnow()}
    res = db.course_lessons.update_one({"_id": to_object_id(lesson_id)}, {"$set": patch})
    if res.matched_count == 0:
        return None
    return get_lesson_by_id(db, lesson_id)

def delete_lesson(db: Database, lesson_id: str) -> bool:
    res = db.course_lessons.delete_one({"_id": to_object_id(lesson_id)})
    if res.deleted_count == 0:
        return False
    db.user_course_progress.update_many(
        {"$or": [{"completed_lessons": lesson_id}, {"accessed_lessons": lesson_id}]},
        {"$pull": {"completed_lessons": lesson_id, "accessed_lessons": lesson_id}, "$inc": {"version": 1}},
    )
    db.user_course_progress.update_many(
        {"course_lesson_id": lesson_id},
        {"$set": {"course_lesson_id": None}, "$inc": {"version": 1}},
    )
    return True
