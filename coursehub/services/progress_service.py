# services/progress_service.py
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from repos import progress as repo
from repos import courses as course_repo
from repos.helper import utcnow
from services import progress_tracker as tracker
from services.exceptions import ConflictError

logger = logging.getLogger(__name__)

# Attempts at a compare-and-swap write before giving up with 409
MAX_WRITE_ATTEMPTS = 3

Mutation = Callable[[Dict[str, Any], List[Dict[str, Any]]], Any]


def _assert_lesson_belongs_to_course(lesson_id: str, published_lessons: List[Dict[str, Any]]) -> None:
    for l in published_lessons:
        if str(l["_id"]) == lesson_id:
            return
    raise ValueError("Lesson not found in the specified course")


def _apply(db: Database, *, user_id: str, course_id: str, mutate: Mutation) -> Tuple[Dict[str, Any], List[Dict[str, Any]], Any]:
    """Read-modify-write of one progress document with optimistic locking.

    ``mutate`` receives the freshly read document and the course's published
    lessons and may return a value that is handed back to the caller.
    """
    published = course_repo.list_lessons(db, course_id, published_only=True)
    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        doc = repo.get_user_course_progress(db, user_id, course_id)
        if doc is None:
            raise ValueError("Not enrolled in course")
        before = {k: doc.get(k) for k in repo.MUTABLE_FIELDS}
        result = mutate(doc, published)
        if {k: doc.get(k) for k in repo.MUTABLE_FIELDS} == before:
            return doc, published, result
        if repo.save_progress(db, doc):
            return doc, published, result
        logger.info(f"Progress write conflict for user={user_id} course={course_id}, attempt {attempt}")
    raise ConflictError("Progress was updated concurrently, please retry")


def _summary(doc: Dict[str, Any], published: List[Dict[str, Any]]) -> Dict[str, Any]:
    return tracker.progress_summary(doc, published, utcnow())

# ---------------------------
# Enrollment
# ---------------------------

def _enroll(db: Database, user_id: str, course_id: str) -> Tuple[Dict[str, Any], bool]:
    existing = repo.get_user_course_progress(db, user_id, course_id)
    if existing:
        return existing, False
    created = repo.create_progress(db, user_id, course_id)
    if created is None:
        # lost a race against a concurrent enrollment of the same pair
        return repo.get_user_course_progress(db, user_id, course_id), False
    logger.info(f"User {user_id} enrolled in course {course_id}")
    return created, True

async def enroll(db: Database, *, user_id: str, course_id: str) -> Tuple[Dict[str, Any], bool]:
    """Returns the progress document and whether it was created by this call."""
    return await run_in_threadpool(_enroll, db, user_id, course_id)

async def get_progress(db: Database, *, user_id: str, course_id: str) -> Optional[Dict[str, Any]]:
    return await run_in_threadpool(repo.get_user_course_progress, db, user_id, course_id)

# ---------------------------
# Lesson events
# ---------------------------

async def open_lesson(db: Database, *, user_id: str, course_id: str, lesson_id: str) -> Dict[str, Any]:
    """A learner opened a lesson page."""
    def mutate(doc, published):
        _assert_lesson_belongs_to_course(lesson_id, published)
        now = utcnow()
        if doc.get("status") == tracker.NOT_STARTED:
            tracker.mark_as_started(doc, now)
        # finished courses are left untouched by browsing
        if doc.get("progress_percentage", 0) < 100:
            tracker.track_lesson_access(doc, lesson_id, published, now, is_forward_navigation=False)

    doc, _, _ = await run_in_threadpool(_apply, db, user_id=user_id, course_id=course_id, mutate=mutate)
    return doc

async def complete_lesson(db: Database, *, user_id: str, course_id: str, lesson_id: str) -> Dict[str, Any]:
    def mutate(doc, published):
        _assert_lesson_belongs_to_course(lesson_id, published)
        tracker.mark_lesson_completed(doc, lesson_id, published, utcnow())

    doc, published, _ = await run_in_threadpool(_apply, db, user_id=user_id, course_id=course_id, mutate=mutate)
    return {
        **_summary(doc, published),
        "next_lesson": tracker.lesson_ref(tracker.next_lesson(doc, published)),
    }

async def navigate_forward(db: Database, *, user_id: str, course_id: str, lesson_id: str) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """Leave ``lesson_id`` towards the next lesson; returns the summary and the next lesson, if any."""
    def mutate(doc, published):
        _assert_lesson_belongs_to_course(lesson_id, published)
        if doc.get("progress_percentage", 0) < 100:
            tracker.track_lesson_access(doc, lesson_id, published, utcnow(), is_forward_navigation=True)

    doc, published, _ = await run_in_threadpool(_apply, db, user_id=user_id, course_id=course_id, mutate=mutate)
    return _summary(doc, published), tracker.next_lesson(doc, published)

async def complete_course(db: Database, *, user_id: str, course_id: str, lesson_id: str) -> Tuple[Dict[str, Any], bool]:
    """Complete the final lesson; returns the summary and whether the course is now complete."""
    def mutate(doc, published):
        _assert_lesson_belongs_to_course(lesson_id, published)
        if doc.get("progress_percentage", 0) < 100:
            tracker.mark_lesson_completed(doc, lesson_id, published, utcnow())

    doc, published, _ = await run_in_threadpool(_apply, db, user_id=user_id, course_id=course_id, mutate=mutate)
    return _summary(doc, published), doc.get("progress_percentage", 0) >= 100

async def touch_lesson(db: Database, *, user_id: str, course_id: str, lesson_id: str) -> Dict[str, Any]:
    """Heartbeat from an open lesson page: last access and current lesson only."""
    def mutate(doc, published):
        _assert_lesson_belongs_to_course(lesson_id, published)
        doc["last_accessed_at"] = utcnow()
        doc["course_lesson_id"] = lesson_id

    doc, _, _ = await run_in_threadpool(_apply, db, user_id=user_id, course_id=course_id, mutate=mutate)
    return doc

# ---------------------------
# Dashboard
# ---------------------------

def _my_courses(db: Database, user_id: str) -> List[Dict[str, Any]]:
    progress_docs = repo.list_user_progress(db, user_id)
    course_ids = [p["course_id"] for p in progress_docs]
    courses = course_repo.get_courses_by_ids(db, course_ids)
    all_lessons = course_repo.lessons_by_course(db, course_ids)
    now = utcnow()

    items = []
    for progress in progress_docs:
        course = courses.get(progress["course_id"])
        if not course:
            continue
        lessons = all_lessons.get(course["_id"], [])
        published = [l for l in lessons if l.get("is_published")]
        items.append({
            "id": course["_id"],
            "title": course["title"],
            "description": course.get("description", ""),
            "slug": course["slug"],
            "thumbnail": course.get("thumbnail"),
            "difficulty": course.get("difficulty", "beginner"),
            "progress_percentage": progress.get("progress_percentage", 0),
            "status": progress.get("status", tracker.NOT_STARTED),
            "started_at": progress.get("started_at"),
            "last_accessed_at": progress.get("last_accessed_at"),
            "completed_at": progress.get("completed_at"),
            "total_lessons": len(published),
            "completed_lessons": tracker.completed_published_count(progress, published),
            "time_spent": tracker.format_time_spent(tracker.time_spent_minutes(progress, now)),
            "estimated_completion": tracker.estimated_time_to_completion(progress, published),
            "next_lesson": tracker.lesson_ref(tracker.next_lesson(progress, published)),
            "current_lesson": tracker.lesson_ref(tracker.current_lesson(progress, lessons, published)),
        })
    return items

async def my_courses(db: Database, *, user_id: str) -> List[Dict[str, Any]]:
    return await run_in_threadpool(_my_courses, db, user_id)
