from fastapi import APIRouter, Depends, Query
from pymongo.database import Database
from deps import get_db
from auth.dependencies import require_role
from services import analytics_service

router = APIRouter(prefix="/admin/analytics", tags=["analytics"], dependencies=[Depends(require_role("admin"))])

@router.get("")
async def trends(db: Database = Depends(get_db)):
    """Monthly registrations and enrollments over the past six months."""
    return await analytics_service.trends(db)

@router.get("/popular-courses")
async def popular_courses(limit: int = Query(analytics_service.DEFAULT_POPULAR_LIMIT, ge=1, le=50), db: Database = Depends(get_db)):
    courses = await analytics_service.popular_courses(db, limit=limit)
    return {"scoring": analytics_service.SCORING_FORMULA, "courses": courses}
