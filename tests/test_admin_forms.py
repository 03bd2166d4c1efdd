"""Admin course and lesson forms."""

import pytest

from factories import make_course, make_lesson
from repos import courses as course_repo
from repos import progress as progress_repo

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def course_form(**overrides):
    data = {
        "title": "Data Science 101",
        "description": "Numbers, mostly",
        "slug": "data-science-101",
        "difficulty": "beginner",
        "duration_weeks": "6",
        "time_commitment_hours": "4",
        "language": "English",
        "is_published": "1",
        "tags": "python, pandas , ,stats",
    }
    data.update(overrides)
    return data


def lesson_form(course_id, **overrides):
    data = {
        "course_id": course_id,
        "title": "Intro",
        "slug": "ds-intro",
        "content": "Welcome",
        "duration_minutes": "15",
        "order": "1",
        "is_published": "true",
    }
    data.update(overrides)
    return data


def test_admin_routes_reject_learners(client, learner_headers):
    assert client.get("/admin/courses", headers=learner_headers).status_code == 403
    assert client.get("/admin/dashboard").status_code == 401


def test_create_course_with_thumbnail(client, db, admin_headers, storage):
    res = client.post(
        "/admin/courses",
        headers=admin_headers,
        data=course_form(),
        files={"thumbnail": ("cover.png", PNG, "image/png")},
    )

    assert res.status_code == 201, res.text
    body = res.json()
    assert body["slug"] == "data-science-101"
    assert body["is_published"] is True
    assert body["is_featured"] is False
    assert body["category"] == "general"
    assert body["tags"] == ["python", "pandas", "stats"]
    assert body["thumbnail"].startswith("course-thumbnails/")
    assert body["thumbnail"].endswith(".png")
    assert storage.exists(body["thumbnail"])


def test_create_course_collects_repeated_list_keys(client, admin_headers):
    data = course_form()
    del data["tags"]
    data["tags[]"] = ["python", "stats"]

    res = client.post("/admin/courses", headers=admin_headers, data=data)

    assert res.status_code == 201, res.text
    assert res.json()["tags"] == ["python", "stats"]


def test_create_course_reports_every_invalid_field(client, db, admin_headers):
    res = client.post(
        "/admin/courses",
        headers=admin_headers,
        data=course_form(title="", difficulty="expert", duration_weeks="0", language="x" * 51),
    )

    assert res.status_code == 422
    body = res.json()
    assert body["message"] == "The given data was invalid."
    assert set(body["errors"]) == {"title", "difficulty", "duration_weeks", "language"}
    assert body["errors"]["title"] == ["The title field is required."]
    assert body["old_input"]["slug"] == "data-science-101"
    assert db.courses.count_documents({}) == 0


def test_create_course_rejects_non_image_thumbnail(client, admin_headers):
    res = client.post(
        "/admin/courses",
        headers=admin_headers,
        data=course_form(),
        files={"thumbnail": ("notes.txt", b"hello", "text/plain")},
    )
    assert res.status_code == 422
    assert res.json()["errors"]["thumbnail"] == ["The thumbnail must be an image."]


def test_course_slug_must_be_unique(client, db, admin_headers):
    make_course(db, "data-science-101")
    res = client.post("/admin/courses", headers=admin_headers, data=course_form())

    assert res.status_code == 422
    assert res.json()["errors"]["slug"] == ["The slug has already been taken."]


def test_update_course_keeps_own_slug(client, db, admin_headers):
    make_course(db, "data-science-101")

    res = client.put("/admin/courses/data-science-101", headers=admin_headers,
                     data=course_form(title="Data Science 102", is_published="0"))

    assert res.status_code == 200, res.text
    assert res.json()["title"] == "Data Science 102"
    assert res.json()["is_published"] is False


def test_admin_course_detail_includes_unpublished_lessons(client, db, admin_headers):
    course = make_course(db, "hidden-gem", is_published=False)
    make_lesson(db, course, "one", order=1)
    make_lesson(db, course, "two", order=2, is_published=False)

    body = client.get("/admin/courses/hidden-gem", headers=admin_headers).json()

    assert [l["slug"] for l in body["lessons"]] == ["one", "two"]
    assert body["total_lessons"] == 2


def test_admin_course_list_counts(client, db, admin_headers, learner):
    course = make_course(db, "counted")
    make_lesson(db, course, "one", order=1)
    progress_repo.create_progress(db, learner["_id"], course["_id"])

    body = client.get("/admin/courses", headers=admin_headers).json()

    [item] = body["items"]
    assert item["enrollments_count"] == 1
    assert item["lessons_count"] == 1


def test_delete_course_cascades(client, db, admin_headers, learner):
    course = make_course(db, "doomed")
    make_lesson(db, course, "one", order=1)
    progress_repo.create_progress(db, learner["_id"], course["_id"])

    res = client.delete("/admin/courses/doomed", headers=admin_headers)

    assert res.status_code == 204
    assert db.courses.count_documents({}) == 0
    assert db.course_lessons.count_documents({}) == 0
    assert db.user_course_progress.count_documents({}) == 0


def test_create_lesson_requires_existing_course(client, admin_headers):
    res = client.post("/admin/lessons", headers=admin_headers, data=lesson_form("64b7f0000000000000000000"))

    assert res.status_code == 422
    assert res.json()["errors"]["course_id"] == ["The selected course id is invalid."]


def test_create_lesson_with_video_and_materials(client, db, admin_headers, storage):
    course = make_course(db, "ds")

    res = client.post(
        "/admin/lessons",
        headers=admin_headers,
        data=lesson_form(course["_id"], video_url="https://videos.example.com/intro"),
        files=[
            ("video_file", ("intro.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")),
            ("materials[]", ("slides.pdf", b"%PDF-1.4", "application/pdf")),
            ("materials[]", ("data.zip", b"PK\x03\x04", "application/zip")),
        ],
    )

    assert res.status_code == 201, res.text
    body = res.json()
    assert body["course_id"] == course["_id"]
    assert body["video_url"].startswith("lesson-videos/")
    assert [r["name"] for r in body["resources"]] == ["slides.pdf", "data.zip"]
    assert all(storage.exists(r["path"]) for r in body["resources"])
    assert body["resources"][0]["size"] == len(b"%PDF-1.4")


def test_create_lesson_validation(client, db, admin_headers):
    course = make_course(db, "ds")
    make_lesson(db, course, "ds-intro", order=1)

    res = client.post(
        "/admin/lessons",
        headers=admin_headers,
        data=lesson_form(course["_id"], order="0", video_url="not a url"),
        files={"materials": ("virus.exe", b"MZ", "application/octet-stream")},
    )

    assert res.status_code == 422
    errors = res.json()["errors"]
    assert set(errors) == {"slug", "order", "video_url", "materials"}
    assert errors["materials"][0].startswith("The materials must be a file of type: pdf")


def test_update_lesson_appends_materials(client, db, admin_headers):
    course = make_course(db, "ds")
    lesson = make_lesson(db, course, "ds-intro", order=1)
    db.course_lessons.update_one({"slug": "ds-intro"}, {"$set": {"resources": [
        {"name": "old.pdf", "path": "lesson-materials/old.pdf", "size": 3, "type": "application/pdf"},
    ]}})

    res = client.put(
        f"/admin/lessons/{lesson['_id']}",
        headers=admin_headers,
        data={"title": "Intro v2", "slug": "ds-intro", "content": "Welcome back", "duration_minutes": "20", "order": "1"},
        files={"materials": ("new.txt", b"notes", "text/plain")},
    )

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["title"] == "Intro v2"
    assert body["is_published"] is False
    assert [r["name"] for r in body["resources"]] == ["old.pdf", "new.txt"]


def test_update_unknown_lesson_is_not_found(client, admin_headers):
    res = client.put("/admin/lessons/64b7f0000000000000000000", headers=admin_headers, data={"title": "x"})
    assert res.status_code == 404


def test_delete_lesson_removes_it_from_progress(client, db, admin_headers, learner):
    course = make_course(db, "ds")
    keep = make_lesson(db, course, "keep", order=1)
    drop = make_lesson(db, course, "drop", order=2)
    progress_repo.create_progress(db, learner["_id"], course["_id"])
    db.user_course_progress.update_one({}, {"$set": {
        "completed_lessons": [keep["_id"], drop["_id"]],
        "accessed_lessons": [drop["_id"]],
        "course_lesson_id": drop["_id"],
    }})

    res = client.delete(f"/admin/lessons/{drop['_id']}", headers=admin_headers)

    assert res.status_code == 204
    doc = db.user_course_progress.find_one({})
    assert doc["completed_lessons"] == [keep["_id"]]
    assert doc["accessed_lessons"] == []
    assert doc["course_lesson_id"] is None


def test_delete_lesson_rejects_stale_progress_writes(db, learner):
    course = make_course(db, "ds")
    keep = make_lesson(db, course, "keep", order=1)
    drop = make_lesson(db, course, "drop", order=2)
    progress_repo.create_progress(db, learner["_id"], course["_id"])
    db.user_course_progress.update_one({}, {"$set": {"completed_lessons": [drop["_id"]]}})
    stale = progress_repo.get_user_course_progress(db, learner["_id"], course["_id"])

    assert course_repo.delete_lesson(db, drop["_id"]) is True

    stale["completed_lessons"] = stale["completed_lessons"] + [keep["_id"]]
    assert progress_repo.save_progress(db, stale) is False
    assert db.user_course_progress.find_one({})["completed_lessons"] == []


@pytest.mark.parametrize("path", ["/admin/users", "/admin/dashboard", "/admin/analytics"])
def test_admin_reports_respond(client, admin_headers, path):
    assert client.get(path, headers=admin_headers).status_code == 200
