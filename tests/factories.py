"""Document builders for tests; they write straight through the repos."""

from datetime import timedelta

from repos import courses as course_repo
from repos.helper import utcnow

PASSWORD = "correct-horse-battery"


def login(client, email, password=PASSWORD):
    res = client.post("/auth/login", data={"username": email, "password": password})
    assert res.status_code == 200, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


def make_course(db, slug, *, is_published=True, is_featured=False, order=0, duration_weeks=4):
    return course_repo.insert_course(db, {
        "title": slug.replace("-", " ").title(),
        "description": f"About {slug}",
        "slug": slug,
        "thumbnail": None,
        "difficulty": "beginner",
        "duration_weeks": duration_weeks,
        "time_commitment_hours": 3,
        "language": "English",
        "learning_objectives": None,
        "prerequisites": None,
        "is_published": is_published,
        "is_featured": is_featured,
        "order": order,
        "category": "general",
        "tags": [],
    })


def make_lesson(db, course, slug, *, order, is_published=True, duration_minutes=30):
    return course_repo.insert_lesson(db, {
        "course_id": course["_id"],
        "title": slug.replace("-", " ").title(),
        "slug": slug,
        "summary": None,
        "content": f"Content of {slug}",
        "video_url": None,
        "duration_minutes": duration_minutes,
        "order": order,
        "is_published": is_published,
    })


def make_progress(db, user_id, course_id, *, status="in_progress", days_since_access=0):
    ts = utcnow() - timedelta(days=days_since_access)
    db.user_course_progress.insert_one({
        "user_id": user_id,
        "course_id": course_id,
        "course_lesson_id": None,
        "status": status,
        "progress_percentage": 100 if status == "completed" else 0,
        "started_at": ts,
        "last_accessed_at": ts,
        "completed_at": ts if status == "completed" else None,
        "completed_lessons": [],
        "accessed_lessons": [],
        "version": 0,
        "created_at": ts,
        "updated_at": ts,
    })
