from fastapi import APIRouter, Depends, Request, status
from redis.asyncio import Redis
from pymongo.database import Database
from typing import Optional

from deps import get_db, get_redis
from auth.dependencies import get_current_user, get_optional_user
from services import course_service, progress_service
from services.flash import pop_flash
from schemas.course_schema import CourseCatalogOut, EnrollmentOut
from schemas.progress_schema import MyCoursesOut
from routers.responses import expects_json, redirect_with_flash, course_url

router = APIRouter(tags=["courses"])

ALREADY_ENROLLED_MESSAGE = "You are already enrolled in this course."

# Public catalog of published courses
@router.get("/courses", response_model=CourseCatalogOut)
async def list_courses(db: Database = Depends(get_db), user: Optional[dict] = Depends(get_optional_user)):
    """
    Published courses ordered by their ordering key, featured ones repeated
    in ``featuredCourses``. Signed-in learners see their progress on each card.
    """
    return await course_service.list_catalog(db, user_id=user["_id"] if user else None)

@router.get("/courses/{slug}")
async def show_course(
    slug: str,
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user: Optional[dict] = Depends(get_optional_user),
):
    payload = await course_service.course_detail(db, slug=slug, user_id=user["_id"] if user else None)
    payload["flash"] = await pop_flash(r, user["_id"]) if user else None
    return payload

@router.post("/courses/{slug}/enroll", status_code=status.HTTP_200_OK)
async def enroll(
    slug: str,
    request: Request,
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user=Depends(get_current_user),
):
    course = await course_service.get_published_course(db, slug)
    _, created = await progress_service.enroll(db, user_id=user["_id"], course_id=course["_id"])

    if created:
        message = f"Successfully enrolled in {course['title']}. You can now access all lessons."
    else:
        message = ALREADY_ENROLLED_MESSAGE

    if expects_json(request):
        return EnrollmentOut(enrolled=True, already_enrolled=not created, message=message, course_url=course_url(slug))
    kind = "success" if created else "info"
    return await redirect_with_flash(r, user["_id"], course_url(slug), **{kind: message})

# Learner dashboard
@router.get("/my-courses", response_model=MyCoursesOut)
async def my_courses(db: Database = Depends(get_db), r: Redis = Depends(get_redis), user=Depends(get_current_user)):
    items = await progress_service.my_courses(db, user_id=user["_id"])
    return MyCoursesOut(enrolledCourses=items, flash=await pop_flash(r, user["_id"]))
