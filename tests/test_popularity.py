"""Popular-course ranking on the home page and in the admin analytics."""

from datetime import datetime

import pytest

from factories import make_course, make_lesson, make_progress
from services import analytics_service


def engage(db, course, *, completed_old=0, active_recent=0, active_old=0):
    n = 0
    for _ in range(completed_old):
        n += 1
        make_progress(db, f"user-{course['slug']}-{n}", course["_id"], status="completed", days_since_access=40)
    for _ in range(active_recent):
        n += 1
        make_progress(db, f"user-{course['slug']}-{n}", course["_id"], status="in_progress", days_since_access=1)
    for _ in range(active_old):
        n += 1
        make_progress(db, f"user-{course['slug']}-{n}", course["_id"], status="in_progress", days_since_access=45)


def test_score_weights():
    assert analytics_service.popularity_score(3, 2, 1) == 8.5
    assert analytics_service.popularity_score(2, 1, 1) == 5.5


def test_completion_rate_rounds_to_one_decimal_and_handles_no_enrollments():
    assert analytics_service.completion_rate(2, 3) == 66.7
    assert analytics_service.completion_rate(0, 0) == 0


@pytest.mark.asyncio
async def test_more_engaged_course_ranks_first(db):
    b = make_course(db, "course-b")
    a = make_course(db, "course-a")
    engage(db, a, completed_old=2, active_recent=1)
    engage(db, b, completed_old=1, active_recent=1)

    ranked = await analytics_service.popular_courses(db)

    assert [c["slug"] for c in ranked] == ["course-a", "course-b"]
    top = ranked[0]
    assert (top["enrollment_count"], top["completion_count"], top["recent_activity"]) == (3, 2, 1)
    assert top["popularity_score"] == 8.5
    assert top["completion_rate"] == 66.7
    assert ranked[1]["popularity_score"] == 5.5


@pytest.mark.asyncio
async def test_ties_keep_creation_order_and_limit_applies(db):
    for slug in ("first", "second", "third", "fourth", "fifth"):
        make_course(db, slug)

    ranked = await analytics_service.popular_courses(db)

    assert [c["slug"] for c in ranked] == ["first", "second", "third", "fourth"]
    assert all(c["popularity_score"] == 0 and c["completion_rate"] == 0 for c in ranked)


@pytest.mark.asyncio
async def test_unpublished_courses_are_not_ranked(db):
    hidden = make_course(db, "hidden", is_published=False)
    engage(db, hidden, completed_old=5)
    make_course(db, "visible")

    ranked = await analytics_service.popular_courses(db, limit=10)

    assert [c["slug"] for c in ranked] == ["visible"]


@pytest.mark.asyncio
async def test_old_activity_does_not_count_as_recent(db):
    course = make_course(db, "quiet")
    engage(db, course, active_old=2)

    [ranked] = await analytics_service.popular_courses(db)

    assert ranked["enrollment_count"] == 2
    assert ranked["recent_activity"] == 0
    assert ranked["popularity_score"] == 2


@pytest.mark.asyncio
async def test_totals_only_count_published_lessons(db):
    course = make_course(db, "with-lessons", duration_weeks=6)
    make_lesson(db, course, "intro", order=1, duration_minutes=20)
    make_lesson(db, course, "deep-dive", order=2, duration_minutes=45)
    make_lesson(db, course, "draft", order=3, duration_minutes=90, is_published=False)

    [ranked] = await analytics_service.popular_courses(db)

    assert ranked["total_lessons"] == 2
    assert ranked["total_duration"] == 65
    assert ranked["duration"] == "6 weeks"


def test_home_page_lists_popular_courses(client, db):
    a = make_course(db, "course-a")
    make_course(db, "course-b")
    engage(db, a, active_recent=1)

    res = client.get("/")

    assert res.status_code == 200
    body = res.json()
    assert [c["slug"] for c in body["popularCourses"]] == ["course-a", "course-b"]
    assert body["flash"] is None


def test_admin_popular_courses_endpoint(client, db, admin_headers):
    make_course(db, "only")

    res = client.get("/admin/analytics/popular-courses?limit=2", headers=admin_headers)

    assert res.status_code == 200
    assert "score" in res.json()["scoring"]
    assert [c["slug"] for c in res.json()["courses"]] == ["only"]


@pytest.mark.asyncio
async def test_trends_bucket_by_month_within_six_months(db):
    now = datetime(2025, 6, 15, 12, 0)
    for ts in (datetime(2024, 12, 1), datetime(2025, 1, 3), datetime(2025, 5, 2), datetime(2025, 5, 28)):
        db.users.insert_one({"email": f"{ts:%Y%m%d}@example.com", "created_at": ts})
    db.user_course_progress.insert_one({"user_id": "u1", "course_id": "c1", "created_at": datetime(2025, 6, 1)})

    result = await analytics_service.trends(db, now=now)

    assert result["monthlyRegistrations"] == [{"month": "2025-01", "count": 1}, {"month": "2025-05", "count": 2}]
    assert result["enrollmentTrends"] == [{"month": "2025-06", "count": 1}]
