from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database
import logging

from deps import get_db, get_storage
from auth.dependencies import require_role
from repos import users
from services import analytics_service, course_service
from services.forms import read_form
from services.storage import LocalFileStorage
from schemas.course_schema import CourseAdminOut, LessonAdminOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_role("admin"))])

@router.get("/dashboard")
async def dashboard(db: Database = Depends(get_db)):
    return await analytics_service.dashboard(db)

# ---------------------------
# Users
# ---------------------------

@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Database = Depends(get_db),
):
    total, items = await run_in_threadpool(users.list_users_page, db, page=page, page_size=page_size)
    return {"total": total, "page": page, "page_size": page_size, "items": items}

@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, db: Database = Depends(get_db), admin=Depends(require_role("admin"))):
    if user_id == admin["_id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    if not await run_in_threadpool(users.delete_user, db, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    logger.info(f"User {user_id} deleted by {admin['_id']}")

# ---------------------------
# Courses
# ---------------------------

@router.get("/courses")
async def list_courses(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Database = Depends(get_db),
):
    return await course_service.list_admin_courses(db, page=page, page_size=page_size)

@router.post("/courses", response_model=CourseAdminOut, status_code=status.HTTP_201_CREATED)
async def create_course(request: Request, db: Database = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    """
    Create a course from a multipart form (or JSON without a thumbnail).

    Field errors come back as 422 with ``errors`` keyed by field and the
    submitted values in ``old_input``.
    """
    values, files = await read_form(request)
    return await course_service.create_course(db, storage, values, files)

@router.get("/courses/{slug}")
async def course_detail(slug: str, db: Database = Depends(get_db)):
    return await course_service.admin_course_detail(db, slug=slug)

@router.put("/courses/{slug}", response_model=CourseAdminOut)
async def update_course(slug: str, request: Request, db: Database = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    values, files = await read_form(request)
    return await course_service.update_course(db, storage, slug=slug, values=values, files=files)

@router.delete("/courses/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(slug: str, db: Database = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    await course_service.delete_course(db, storage, slug=slug)

# ---------------------------
# Lessons
# ---------------------------

@router.post("/lessons", response_model=LessonAdminOut, status_code=status.HTTP_201_CREATED)
async def create_lesson(request: Request, db: Database = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    values, files = await read_form(request)
    return await course_service.create_lesson(db, storage, values, files)

@router.put("/lessons/{lesson_id}", response_model=LessonAdminOut)
async def update_lesson(lesson_id: str, request: Request, db: Database = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    values, files = await read_form(request)
    return await course_service.update_lesson(db, storage, lesson_id=lesson_id, values=values, files=files)

@router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(lesson_id: str, db: Database = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    await course_service.delete_lesson(db, storage, lesson_id=lesson_id)
