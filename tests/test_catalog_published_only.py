"""The public catalog never leaks unpublished courses or lessons."""

from factories import make_course, make_lesson


def seed(db):
    live = make_course(db, "live", order=2, is_featured=True, duration_weeks=3)
    make_lesson(db, live, "live-two", order=2, duration_minutes=25)
    make_lesson(db, live, "live-one", order=1, duration_minutes=10)
    make_lesson(db, live, "live-draft", order=3, duration_minutes=60, is_published=False)
    early = make_course(db, "early", order=1)
    make_lesson(db, early, "early-one", order=1)
    draft = make_course(db, "draft-course", order=0, is_published=False)
    make_lesson(db, draft, "draft-one", order=1)
    return live, early, draft


def test_catalog_lists_published_courses_by_order(client, db):
    seed(db)

    body = client.get("/courses").json()

    assert [c["slug"] for c in body["allCourses"]] == ["early", "live"]
    assert [c["slug"] for c in body["featuredCourses"]] == ["live"]


def test_catalog_totals_cover_published_lessons_only(client, db):
    seed(db)

    live = next(c for c in client.get("/courses").json()["allCourses"] if c["slug"] == "live")

    assert [l["slug"] for l in live["lessons"]] == ["live-one", "live-two"]
    assert live["total_lessons"] == 2
    assert live["total_duration"] == sum(l["duration_minutes"] for l in live["lessons"]) == 35
    assert live["duration"] == "3 weeks"
    assert live["user_progress"] is None


def test_course_detail_hides_unpublished(client, db):
    seed(db)

    assert client.get("/courses/draft-course").status_code == 404
    assert client.get("/courses/no-such-course").status_code == 404

    body = client.get("/courses/live").json()
    assert [l["slug"] for l in body["lessons"]] == ["live-one", "live-two"]
    assert body["is_enrolled"] is False


def test_equal_order_keys_fall_back_to_insertion(client, db):
    course = make_course(db, "ties")
    make_lesson(db, course, "first-in", order=1)
    make_lesson(db, course, "second-in", order=1)

    body = client.get("/courses/ties").json()

    assert [l["slug"] for l in body["lessons"]] == ["first-in", "second-in"]


def test_catalog_shows_learner_progress(client, db, learner_headers):
    seed(db)
    client.post("/courses/live/enroll", headers={**learner_headers, "Accept": "application/json"})
    client.post("/courses/live/lessons/live-one/complete", headers={**learner_headers, "Accept": "application/json"})

    body = client.get("/courses", headers=learner_headers).json()

    live = next(c for c in body["allCourses"] if c["slug"] == "live")
    assert live["user_progress"]["progress_percentage"] == 50
    assert [l["is_completed"] for l in live["lessons"]] == [True, False]


def test_cannot_enroll_in_unpublished_course(client, db, learner_headers):
    seed(db)
    res = client.post("/courses/draft-course/enroll", headers={**learner_headers, "Accept": "application/json"})
    assert res.status_code == 404
