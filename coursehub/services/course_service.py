# services/course_service.py
import logging
from typing import Dict, Any, List, Optional, Tuple

from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from repos import courses as repo
from repos import progress as progress_repo
from repos.helper import utcnow
from schemas.course_schema import CourseForm, LessonForm, LessonCreateForm
from services import forms
from services import progress_service
from services import progress_tracker as tracker
from services.exceptions import NotFoundError
from services.storage import LocalFileStorage, THUMBNAILS_DIR, VIDEOS_DIR, MATERIALS_DIR

logger = logging.getLogger(__name__)

THUMBNAIL_RULES = {"thumbnail": {"extensions": forms.IMAGE_TYPES, "max_kb": forms.THUMBNAIL_MAX_KB, "image": True}}
LESSON_FILE_RULES = {
    "video_file": {"extensions": forms.VIDEO_TYPES, "max_kb": forms.VIDEO_MAX_KB},
    "materials": {"extensions": forms.MATERIAL_TYPES, "max_kb": forms.MATERIAL_MAX_KB},
}

def _published(lessons: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [l for l in lessons if l.get("is_published")]

def _progress_payload(progress: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not progress:
        return None
    return {
        "status": progress.get("status"),
        "progress_percentage": progress.get("progress_percentage", 0),
        "completed_lessons": list(progress.get("completed_lessons") or []),
        "course_lesson_id": progress.get("course_lesson_id"),
        "started_at": progress.get("started_at"),
        "last_accessed_at": progress.get("last_accessed_at"),
        "completed_at": progress.get("completed_at"),
    }

def _lesson_summary(lesson: Dict[str, Any], completed: List[str]) -> Dict[str, Any]:
    return {
        "id": lesson["_id"],
        "title": lesson["title"],
        "slug": lesson["slug"],
        "summary": lesson.get("summary"),
        "duration_minutes": int(lesson.get("duration_minutes") or 0),
        "order": int(lesson.get("order") or 0),
        "is_completed": lesson["_id"] in completed,
    }

def _course_card(course: Dict[str, Any], lessons: List[Dict[str, Any]], progress: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    completed = list((progress or {}).get("completed_lessons") or [])
    course = repo.with_lesson_totals(course, lessons)
    return {
        "id": course["_id"],
        "title": course["title"],
        "description": course.get("description", ""),
        "slug": course["slug"],
        "thumbnail": course.get("thumbnail"),
        "difficulty": course.get("difficulty", "beginner"),
        "duration_weeks": int(course.get("duration_weeks") or 0),
        "time_commitment_hours": int(course.get("time_commitment_hours") or 0),
        "language": course.get("language"),
        "learning_objectives": course.get("learning_objectives"),
        "prerequisites": course.get("prerequisites"),
        "is_featured": bool(course.get("is_featured")),
        "category": course.get("category"),
        "tags": course.get("tags") or [],
        "lessons": [_lesson_summary(l, completed) for l in lessons],
        "total_lessons": course["total_lessons"],
        "total_duration": course["total_duration"],
        "duration": course["duration"],
        "user_progress": _progress_payload(progress),
    }

# ---------------------------
# Public catalog
# ---------------------------

def _catalog(db: Database, user_id: Optional[str]) -> Dict[str, Any]:
    courses = repo.list_published_courses(db)
    course_ids = [c["_id"] for c in courses]
    lessons = repo.lessons_by_course(db, course_ids, published_only=True)
    progress = progress_repo.progress_for_courses(db, user_id, course_ids) if user_id else {}

    cards = [_course_card(c, lessons.get(c["_id"], []), progress.get(c["_id"])) for c in courses]
    return {
        "featuredCourses": [c for c in cards if c["is_featured"]],
        "allCourses": cards,
    }

async def list_catalog(db: Database, *, user_id: Optional[str] = None) -> Dict[str, Any]:
    return await run_in_threadpool(_catalog, db, user_id)

def _course_detail(db: Database, slug: str, user_id: Optional[str]) -> Dict[str, Any]:
    course = repo.get_course_by_slug(db, slug, published_only=True)
    if not course:
        raise NotFoundError("Course not found")
    lessons = repo.list_lessons(db, course["_id"], published_only=True)
    progress = progress_repo.get_user_course_progress(db, user_id, course["_id"]) if user_id else None
    card = _course_card(course, lessons, progress)
    card["is_enrolled"] = progress is not None
    return card

async def course_detail(db: Database, *, slug: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    return await run_in_threadpool(_course_detail, db, slug, user_id)

async def get_published_course(db: Database, slug: str) -> Dict[str, Any]:
    course = await run_in_threadpool(repo.get_course_by_slug, db, slug, published_only=True)
    if not course:
        raise NotFoundError("Course not found")
    return course

async def get_published_lesson(db: Database, course: Dict[str, Any], lesson_slug: str) -> Dict[str, Any]:
    """Published lesson of ``course``; a slug belonging to another course is a 404 too."""
    lesson = await run_in_threadpool(repo.get_lesson_by_slug, db, course["_id"], lesson_slug, published_only=True)
    if not lesson:
        raise NotFoundError("Lesson not found")
    return lesson

def _navigation(lesson: Dict[str, Any], published: List[Dict[str, Any]], progress: Dict[str, Any]) -> Dict[str, Any]:
    ids = [l["_id"] for l in published]
    index = ids.index(lesson["_id"])
    prev_lesson = published[index - 1] if index > 0 else None
    next_lesson = published[index + 1] if index + 1 < len(published) else None
    return {
        "previous_lesson": tracker.lesson_ref(prev_lesson),
        "next_lesson": tracker.lesson_ref(next_lesson),
        "current_index": index + 1,
        "total_lessons": len(published),
        "is_course_completed": progress.get("progress_percentage", 0) >= 100,
    }

async def lesson_page(db: Database, *, course_slug: str, lesson_slug: str, user_id: str) -> Dict[str, Any]:
    """Payload for a lesson page. Opening the page counts as accessing the lesson."""
    course = await get_published_course(db, course_slug)
    lesson = await get_published_lesson(db, course, lesson_slug)

    if not await progress_service.get_progress(db, user_id=user_id, course_id=course["_id"]):
        raise ValueError("You must enroll in this course to access lessons.")

    progress = await progress_service.open_lesson(db, user_id=user_id, course_id=course["_id"], lesson_id=lesson["_id"])
    published = await run_in_threadpool(repo.list_lessons, db, course["_id"], published_only=True)
    completed = list(progress.get("completed_lessons") or [])

    return {
        "course": {
            "id": course["_id"],
            "title": course["title"],
            "slug": course["slug"],
            "lessons": [_lesson_summary(l, completed) for l in published],
        },
        "lesson": {
            **_lesson_summary(lesson, completed),
            "content": lesson.get("content", ""),
            "video_url": lesson.get("video_url"),
            "resources": lesson.get("resources") or [],
            "is_accessed": tracker.is_lesson_accessed(progress, lesson["_id"]),
        },
        "navigation": _navigation(lesson, published, progress),
        "progress": tracker.progress_summary(progress, published, utcnow()),
    }

# ---------------------------
# Admin: courses
# ---------------------------

async def list_admin_courses(db: Database, *, page: int, page_size: int) -> Dict[str, Any]:
    total, items = await run_in_threadpool(repo.list_courses_page, db, page=page, page_size=page_size)
    return {"total": total, "page": page, "page_size": page_size, "items": items}

def _admin_course(db: Database, slug: str) -> Dict[str, Any]:
    course = repo.get_course_by_slug(db, slug)
    if not course:
        raise NotFoundError("Course not found")
    return repo.with_lesson_totals(course, repo.list_lessons(db, course["_id"]))

async def admin_course_detail(db: Database, *, slug: str) -> Dict[str, Any]:
    """Course with every lesson, published or not."""
    return await run_in_threadpool(_admin_course, db, slug)

async def _validate_course(db: Database, values: Dict[str, Any], files: forms.Files, exclude_id: Optional[str] = None) -> CourseForm:
    errors = forms.check_uploads(files, THUMBNAIL_RULES)
    slug = (values.get("slug") or "").strip()
    if slug and await run_in_threadpool(repo.course_slug_taken, db, slug, exclude_id):
        errors.setdefault("slug", []).append("The slug has already been taken.")
    return forms.validate_form(CourseForm, values, errors)

async def create_course(db: Database, storage: LocalFileStorage, values: Dict[str, Any], files: forms.Files) -> Dict[str, Any]:
    form = await _validate_course(db, values, files)
    data = form.model_dump()
    data["thumbnail"] = None
    if files.get("thumbnail"):
        data["thumbnail"] = await run_in_threadpool(storage.store, files["thumbnail"][0], THUMBNAILS_DIR)
    doc = await run_in_threadpool(repo.insert_course, db, data)
    logger.info(f"Course created: {doc['slug']} ({doc['_id']})")
    return doc

async def update_course(db: Database, storage: LocalFileStorage, *, slug: str, values: Dict[str, Any], files: forms.Files) -> Dict[str, Any]:
    course = await run_in_threadpool(repo.get_course_by_slug, db, slug)
    if not course:
        raise NotFoundError("Course not found")
    form = await _validate_course(db, values, files, exclude_id=course["_id"])
    patch = form.model_dump()
    if files.get("thumbnail"):
        patch["thumbnail"] = await run_in_threadpool(storage.store, files["thumbnail"][0], THUMBNAILS_DIR)
        if course.get("thumbnail"):
            await run_in_threadpool(storage.delete, course["thumbnail"])
    doc = await run_in_threadpool(repo.update_course, db, course["_id"], patch)
    logger.info(f"Course updated: {doc['slug']} ({doc['_id']})")
    return doc

async def delete_course(db: Database, storage: LocalFileStorage, *, slug: str) -> None:
    course = await run_in_threadpool(repo.get_course_by_slug, db, slug)
    if not course:
        raise NotFoundError("Course not found")
    await run_in_threadpool(repo.delete_course, db, course["_id"])
    if course.get("thumbnail"):
        await run_in_threadpool(storage.delete, course["thumbnail"])
    logger.info(f"Course deleted: {course['slug']} ({course['_id']})")

# ---------------------------
# Admin: lessons
# ---------------------------

async def _store_lesson_files(storage: LocalFileStorage, files: forms.Files) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    video_path = None
    if files.get("video_file"):
        video_path = await run_in_threadpool(storage.store, files["video_file"][0], VIDEOS_DIR)
    resources = []
    for upload in files.get("materials", []):
        path = await run_in_threadpool(storage.store, upload, MATERIALS_DIR)
        resources.append({
            "name": upload.filename,
            "path": path,
            "size": forms.upload_size(upload),
            "type": upload.content_type,
        })
    return video_path, resources

def _lesson_data(form: LessonForm) -> Dict[str, Any]:
    data = form.model_dump(exclude={"course_id"})
    if data.get("video_url") is not None:
        data["video_url"] = str(data["video_url"])
    return data

async def _check_lesson_slug(db: Database, values: Dict[str, Any], errors: forms.Errors, exclude_id: Optional[str] = None) -> None:
    slug = (values.get("slug") or "").strip()
    if slug and await run_in_threadpool(repo.lesson_slug_taken, db, slug, exclude_id):
        errors.setdefault("slug", []).append("The slug has already been taken.")

async def create_lesson(db: Database, storage: LocalFileStorage, values: Dict[str, Any], files: forms.Files) -> Dict[str, Any]:
    errors = forms.check_uploads(files, LESSON_FILE_RULES)
    course_id = (values.get("course_id") or "").strip()
    if course_id and not await run_in_threadpool(repo.get_course_by_id, db, course_id):
        errors.setdefault("course_id", []).append("The selected course id is invalid.")
    await _check_lesson_slug(db, values, errors)
    form = forms.validate_form(LessonCreateForm, values, errors)

    data = _lesson_data(form)
    data["course_id"] = form.course_id
    video_path, resources = await _store_lesson_files(storage, files)
    if video_path:
        data["video_url"] = video_path
    data["resources"] = resources

    doc = await run_in_threadpool(repo.insert_lesson, db, data)
    logger.info(f"Lesson created: {doc['slug']} in course {doc['course_id']}")
    return doc

async def update_lesson(db: Database, storage: LocalFileStorage, *, lesson_id: str, values: Dict[str, Any], files: forms.Files) -> Dict[str, Any]:
    lesson = await run_in_threadpool(repo.get_lesson_by_id, db, lesson_id)
    if not lesson:
        raise NotFoundError("Lesson not found")
    errors = forms.check_uploads(files, LESSON_FILE_RULES)
    await _check_lesson_slug(db, values, errors, exclude_id=lesson_id)
    form = forms.validate_form(LessonForm, values, errors)

    patch = _lesson_data(form)
    video_path, resources = await _store_lesson_files(storage, files)
    if video_path:
        patch["video_url"] = video_path
    # new materials are added to what is already attached
    patch["resources"] = list(lesson.get("resources") or []) + resources

    doc = await run_in_threadpool(repo.update_lesson, db, lesson_id, patch)
    logger.info(f"Lesson updated: {doc['slug']} ({lesson_id})")
    return doc

async def delete_lesson(db: Database, storage: LocalFileStorage, *, lesson_id: str) -> None:
    lesson = await run_in_threadpool(repo.get_lesson_by_id, db, lesson_id)
    if not lesson:
        raise NotFoundError("Lesson not found")
    await run_in_threadpool(repo.delete_lesson, db, lesson_id)
    for resource in lesson.get("resources") or []:
        await run_in_threadpool(storage.delete, resource["path"])
    video = lesson.get("video_url")
    if video and video.startswith(VIDEOS_DIR + "/"):
        await run_in_threadpool(storage.delete, video)
    logger.info(f"Lesson deleted: {lesson['slug']} ({lesson_id})")
