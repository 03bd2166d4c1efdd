# services/analytics_service.py
import calendar
import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

from pymongo.database import Database
from fastapi.concurrency import run_in_threadpool

from repos import courses as course_repo
from repos import progress as progress_repo
from repos import users as user_repo
from repos.helper import utcnow
from services.progress_tracker import round_half_up

logger = logging.getLogger(__name__)

# Popularity weights
ENROLLMENT_WEIGHT = 1
COMPLETION_WEIGHT = 2
RECENT_ACTIVITY_WEIGHT = 1.5
RECENT_ACTIVITY_DAYS = 30

DEFAULT_POPULAR_LIMIT = 4
DASHBOARD_COURSES = 4
TREND_MONTHS = 6

SCORING_FORMULA = "score = enrollments x 1 + completions x 2 + recent activity (30 days) x 1.5"

# ---------------------------
# Popular courses
# ---------------------------

def popularity_score(enrollment_count: int, completion_count: int, recent_activity: int) -> float:
    return (enrollment_count * ENROLLMENT_WEIGHT
            + completion_count * COMPLETION_WEIGHT
            + recent_activity * RECENT_ACTIVITY_WEIGHT)

def completion_rate(completions: int, enrollments: int) -> float:
    if enrollments <= 0:
        return 0
    return round_half_up(completions * 100 / enrollments, 1)

def _popular_courses(db: Database, limit: int, now: datetime) -> List[Dict[str, Any]]:
    courses = course_repo.list_published_courses_by_creation(db)
    lessons = course_repo.lessons_by_course(db, [c["_id"] for c in courses], published_only=True)

    engagement = progress_repo.engagement_counts(
        db, [c["_id"] for c in courses], recent_days=RECENT_ACTIVITY_DAYS, now=now)

    ranked = []
    for course in courses:
        counts = engagement.get(course["_id"]) or dict.fromkeys(progress_repo.ENGAGEMENT_FIELDS, 0)
        course = course_repo.with_lesson_totals(course, lessons.get(course["_id"], []))
        ranked.append({
            "id": course["_id"],
            "title": course["title"],
            "description": course.get("description", ""),
            "slug": course["slug"],
            "thumbnail": course.get("thumbnail"),
            "difficulty": course.get("difficulty", "beginner"),
            "duration_weeks": int(course.get("duration_weeks") or 0),
            "time_commitment_hours": int(course.get("time_commitment_hours") or 0),
            "category": course.get("category"),
            "tags": course.get("tags") or [],
            "duration": course["duration"],
            "total_lessons": course["total_lessons"],
            "total_duration": course["total_duration"],
            **counts,
            "popularity_score": popularity_score(**counts),
            "completion_rate": completion_rate(counts["completion_count"], counts["enrollment_count"]),
        })

    # sorted() is stable: equal scores keep creation order
    ranked = sorted(ranked, key=lambda c: c["popularity_score"], reverse=True)
    return ranked[:limit]

async def popular_courses(db: Database, *, limit: int = DEFAULT_POPULAR_LIMIT, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Published courses ranked by engagement, recomputed on every call."""
    return await run_in_threadpool(_popular_courses, db, limit, now or utcnow())

def popular_courses_sync(db: Database, *, limit: int = DEFAULT_POPULAR_LIMIT, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    return _popular_courses(db, limit, now or utcnow())

# ---------------------------
# Admin dashboard
# ---------------------------

def _dashboard(db: Database) -> Dict[str, Any]:
    total_enrollments = progress_repo.count_progress(db)
    completed = progress_repo.count_progress(db, {"status": "completed"})
    stats = {
        "totalUsers": user_repo.count_users(db),
        "totalCourses": course_repo.count_courses(db),
        "activeEnrollments": progress_repo.count_progress(db, {"status": "in_progress"}),
        "completionRate": round_half_up(completed * 100 / total_enrollments) if total_enrollments else 0,
    }

    recent = [
        {"id": u["_id"], "name": u.get("name"), "email": u.get("email"), "created_at": u.get("created_at")}
        for u in user_repo.recent_users(db, limit=5)
    ]

    course_progress = []
    for course in course_repo.list_all_courses(db, limit=DASHBOARD_COURSES):
        enrolled = progress_repo.count_progress(db, {"course_id": course["_id"]})
        done = progress_repo.count_progress(db, {"course_id": course["_id"], "status": "completed"})
        course_progress.append({
            "id": course["_id"],
            "title": course["title"],
            "enrolled_count": enrolled,
            "active_users": progress_repo.count_progress(db, {"course_id": course["_id"], "status": "in_progress"}),
            "completion_rate": round_half_up(done * 100 / enrolled) if enrolled else 0,
        })

    return {"stats": stats, "recentUsers": recent, "courseProgress": course_progress}

async def dashboard(db: Database) -> Dict[str, Any]:
    return await run_in_threadpool(_dashboard, db)

# ---------------------------
# Monthly trends
# ---------------------------

def months_ago(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)

def _trends(db: Database, now: datetime) -> Dict[str, Any]:
    since = months_ago(now, TREND_MONTHS)
    return {
        "monthlyRegistrations": user_repo.registrations_by_month(db, since),
        "enrollmentTrends": progress_repo.enrollments_by_month(db, since),
    }

async def trends(db: Database, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    return await run_in_threadpool(_trends, db, now or utcnow())
