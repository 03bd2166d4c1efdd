# services/progress_tracker.py
"""
Course-progress state model.

Pure functions over a progress document (a plain dict shaped like the
``user_course_progress`` collection) and the course's published lessons
(dicts with at least ``_id`` and ``order``, already sorted by order key).
Nothing in here touches the database; the caller loads, mutates and saves.

Invariant kept by every mutating function:
    progress_percentage == round_half_up(100 * completed_published / published)
    status == "completed"  iff  progress_percentage >= 100
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

# Flat estimate per remaining lesson, not derived from the learner's pace
MINUTES_PER_LESSON = 30

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
STATUSES = (NOT_STARTED, IN_PROGRESS, COMPLETED)


def round_half_up(value: float, ndigits: int = 0):
    quantum = Decimal(1).scaleb(-ndigits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if ndigits == 0 else float(rounded)


def is_lesson_completed(progress: Dict[str, Any], lesson_id: str) -> bool:
    return lesson_id in (progress.get("completed_lessons") or [])


def is_lesson_accessed(progress: Dict[str, Any], lesson_id: str) -> bool:
    return lesson_id in (progress.get("accessed_lessons") or [])


def completed_published_count(progress: Dict[str, Any], published_lessons: List[Dict[str, Any]]) -> int:
    """Completed lessons that are still published; unpublished ones no longer count."""
    published = {str(lesson["_id"]) for lesson in published_lessons}
    return sum(1 for lesson_id in set(progress.get("completed_lessons") or []) if lesson_id in published)


def recalculate(progress: Dict[str, Any], published_lessons: List[Dict[str, Any]], now: datetime) -> None:
    """Recompute percentage and status from the completed set."""
    completed = progress.get("completed_lessons") or []
    total = len(published_lessons)
    if total > 0:
        progress["progress_percentage"] = round_half_up(completed_published_count(progress, published_lessons) * 100 / total)

    if progress.get("progress_percentage", 0) >= 100:
        if progress.get("status") != COMPLETED:
            progress["completed_at"] = now
        progress["status"] = COMPLETED
    elif completed:
        progress["status"] = IN_PROGRESS
        progress["completed_at"] = None


def mark_lesson_completed(progress: Dict[str, Any], lesson_id: str,
                          published_lessons: List[Dict[str, Any]], now: datetime) -> bool:
    """Add ``lesson_id`` to the completed set. Returns False if it was already there."""
    completed = list(progress.get("completed_lessons") or [])
    if lesson_id in completed:
        return False
    completed.append(lesson_id)
    progress["completed_lessons"] = completed
    progress["last_accessed_at"] = now
    progress["course_lesson_id"] = lesson_id
    recalculate(progress, published_lessons, now)
    return True


def track_lesson_access(progress: Dict[str, Any], lesson_id: str,
                        published_lessons: List[Dict[str, Any]], now: datetime,
                        is_forward_navigation: bool = False) -> None:
    """Record a visit to a lesson.

    Forward navigation completes the lesson being left: when the learner
    moves on from ``lesson_id`` it counts as completed.
    """
    progress["last_accessed_at"] = now
    progress["course_lesson_id"] = lesson_id

    accessed = list(progress.get("accessed_lessons") or [])
    if lesson_id not in accessed:
        accessed.append(lesson_id)
        progress["accessed_lessons"] = accessed

    if is_forward_navigation and not is_lesson_completed(progress, lesson_id):
        mark_lesson_completed(progress, lesson_id, published_lessons, now)


def mark_as_started(progress: Dict[str, Any], now: datetime) -> None:
    if progress.get("status") != COMPLETED:
        progress["status"] = IN_PROGRESS
    if not progress.get("started_at"):
        progress["started_at"] = now
    progress["last_accessed_at"] = now


def next_lesson(progress: Dict[str, Any], published_lessons: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    completed = set(progress.get("completed_lessons") or [])
    for lesson in published_lessons:
        if str(lesson["_id"]) not in completed:
            return lesson
    return None


def current_lesson(progress: Dict[str, Any], lessons: List[Dict[str, Any]],
                   published_lessons: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """The lesson the pointer references, falling back to the next lesson to complete."""
    pointer = progress.get("course_lesson_id")
    if pointer:
        for lesson in lessons:
            if str(lesson["_id"]) == pointer:
                return lesson
    return next_lesson(progress, published_lessons)


def estimated_time_to_completion(progress: Dict[str, Any], published_lessons: List[Dict[str, Any]]) -> int:
    remaining = len(published_lessons) - completed_published_count(progress, published_lessons)
    if remaining <= 0:
        return 0
    return remaining * MINUTES_PER_LESSON


def time_spent_minutes(progress: Dict[str, Any], now: datetime) -> int:
    started = progress.get("started_at")
    if not started:
        return 0
    end = progress.get("completed_at") or now
    return max(0, int((end - started).total_seconds() // 60))


def format_time_spent(minutes: int) -> str:
    hours, rest = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {rest}m"
    return f"{rest}m"


def progress_summary(progress: Dict[str, Any], published_lessons: List[Dict[str, Any]], now: datetime) -> Dict[str, Any]:
    return {
        "progress_percentage": progress.get("progress_percentage", 0),
        "status": progress.get("status", NOT_STARTED),
        "completed_lessons": list(progress.get("completed_lessons") or []),
        "time_spent": format_time_spent(time_spent_minutes(progress, now)),
        "estimated_completion": estimated_time_to_completion(progress, published_lessons),
    }


def lesson_ref(lesson: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not lesson:
        return None
    return {"id": str(lesson["_id"]), "title": lesson.get("title"), "slug": lesson.get("slug")}
