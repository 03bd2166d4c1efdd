# routers/responses.py
from typing import Any

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from redis.asyncio import Redis

from services.flash import flash


def expects_json(request: Request) -> bool:
    """True for XHR/fetch clients; browsers posting a form get a redirect instead."""
    if request.headers.get("x-requested-with", "").lower() == "xmlhttprequest":
        return True
    return "application/json" in request.headers.get("accept", "")


async def redirect_with_flash(r: Redis, user_id: str, url: str, **data: Any) -> RedirectResponse:
    if data:
        await flash(r, user_id, **data)
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def lesson_url(course_slug: str, lesson_slug: str) -> str:
    return f"/courses/{course_slug}/lessons/{lesson_slug}"


def course_url(course_slug: str) -> str:
    return f"/courses/{course_slug}"
