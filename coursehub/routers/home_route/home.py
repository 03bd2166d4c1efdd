from fastapi import APIRouter, Depends, Request, status
from redis.asyncio import Redis
from pymongo.database import Database
from typing import Optional

from config import settings
from deps import get_db, get_redis
from auth.dependencies import get_optional_user
from services import analytics_service, contact_service
from services.flash import pop_flash
from services.forms import read_form

router = APIRouter(tags=["home"])

@router.get("/")
async def home(
    db: Database = Depends(get_db),
    r: Redis = Depends(get_redis),
    user: Optional[dict] = Depends(get_optional_user),
):
    """Marketing page: the most popular published courses, ranked live."""
    popular = await analytics_service.popular_courses(db, limit=settings.POPULAR_COURSES_LIMIT)
    return {
        "popularCourses": popular,
        "flash": await pop_flash(r, user["_id"]) if user else None,
    }

@router.post("/contact", status_code=status.HTTP_201_CREATED)
async def submit_contact(request: Request, db: Database = Depends(get_db)):
    values, _ = await read_form(request)
    doc = await contact_service.submit(db, values)
    return {"message": contact_service.SUBMITTED_MESSAGE, "id": doc["_id"]}
