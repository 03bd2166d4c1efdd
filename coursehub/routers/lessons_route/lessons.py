from fastapi import APIRouter, Depends, Request
from redis.asyncio import Redis
from pymongo.database import Database
import logging

from deps import get_db, get_redis
from auth.dependencies import get_current_user
from services import course_service, progress_service
from services.flash import pop_flash
from schemas.progress_schema import CompleteLessonOut, NavigationOut, TouchOut
from routers.responses import expects_json, redirect_with_flash, lesson_url, course_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses/{course_slug}/lessons", tags=["lessons"])

COMPLETED_MESSAGE = "Congratulations! You have completed this course."

async def _resolve(db: Database, course_slug: str, lesson_slug: str):
    course = await course_service.get_published_course(db, course_slug)
    lesson = await course_service.get_published_lesson(db, course, lesson_slug)
    return course, lesson

@router.get("/{lesson_slug}")
async def show_lesson(
    course_slug: str,
    lesson_slug: str,
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user=Depends(get_current_user),
):
    """
    Lesson page payload. Opening it marks the course started and records
    the visit; finished courses can be browsed without changing progress.
    """
    payload = await course_service.lesson_page(db, course_slug=course_slug, lesson_slug=lesson_slug, user_id=user["_id"])
    payload["flash"] = await pop_flash(r, user["_id"])
    return payload

@router.post("/{lesson_slug}/complete")
async def complete_lesson(
    course_slug: str,
    lesson_slug: str,
    request: Request,
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user=Depends(get_current_user),
):
    course, lesson = await _resolve(db, course_slug, lesson_slug)
    data = await progress_service.complete_lesson(db, user_id=user["_id"], course_id=course["_id"], lesson_id=lesson["_id"])
    payload = CompleteLessonOut(**data)

    if expects_json(request):
        return payload
    return await redirect_with_flash(r, user["_id"], lesson_url(course_slug, lesson_slug), data=payload.model_dump())

@router.post("/{lesson_slug}/progress")
async def update_progress(
    course_slug: str,
    lesson_slug: str,
    request: Request,
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user=Depends(get_current_user),
):
    course, lesson = await _resolve(db, course_slug, lesson_slug)
    doc = await progress_service.touch_lesson(db, user_id=user["_id"], course_id=course["_id"], lesson_id=lesson["_id"])

    if expects_json(request):
        return TouchOut(last_accessed_at=doc.get("last_accessed_at"))
    return await redirect_with_flash(r, user["_id"], lesson_url(course_slug, lesson_slug), success="Progress updated")

@router.post("/{lesson_slug}/navigate-forward")
async def navigate_forward(
    course_slug: str,
    lesson_slug: str,
    request: Request,
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user=Depends(get_current_user),
):
    course, lesson = await _resolve(db, course_slug, lesson_slug)
    summary, next_lesson = await progress_service.navigate_forward(
        db, user_id=user["_id"], course_id=course["_id"], lesson_id=lesson["_id"]
    )

    if next_lesson:
        url = lesson_url(course_slug, next_lesson["slug"])
        if expects_json(request):
            return NavigationOut(progress_data=summary, next_lesson_url=url)
        return await redirect_with_flash(r, user["_id"], url, data=summary)

    if expects_json(request):
        return NavigationOut(progress_data=summary, course_completed=True, course_url=course_url(course_slug))
    return await redirect_with_flash(r, user["_id"], course_url(course_slug), success=COMPLETED_MESSAGE)

@router.post("/{lesson_slug}/complete-course")
async def complete_course(
    course_slug: str,
    lesson_slug: str,
    request: Request,
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user=Depends(get_current_user),
):
    course, lesson = await _resolve(db, course_slug, lesson_slug)
    summary, completed = await progress_service.complete_course(
        db, user_id=user["_id"], course_id=course["_id"], lesson_id=lesson["_id"]
    )
    if completed:
        logger.info(f"User {user['_id']} completed course {course['slug']}")

    if expects_json(request):
        return NavigationOut(progress_data=summary, course_completed=completed, course_url=course_url(course_slug))
    return await redirect_with_flash(r, user["_id"], course_url(course_slug), success=COMPLETED_MESSAGE, data=summary)
