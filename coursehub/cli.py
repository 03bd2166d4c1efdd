# cli.py
"""Operator commands that talk to MongoDB directly."""

import argparse
import logging
import sys

from config import settings
from deps import create_mongo_client
from logging_config import setup_logging
from repos import users
from services import analytics_service

logger = logging.getLogger(__name__)

HEADERS = ["Rank", "Course Title", "Enrollments", "Completions", "Recent Activity",
           "Completion Rate", "Popularity Score", "Difficulty", "Duration"]


def format_table(headers, rows):
    widths = [max(len(str(v)) for v in col) for col in zip(headers, *rows)]
    line = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def fmt(row):
        return "| " + " | ".join(str(v).ljust(w) for v, w in zip(row, widths)) + " |"

    return "\n".join([line, fmt(headers), line, *(fmt(r) for r in rows), line])


def popular_courses(db, limit: int) -> int:
    print(f"Fetching the {limit} most popular courses...\n")
    ranked = analytics_service.popular_courses_sync(db, limit=limit)
    if not ranked:
        print("No courses found with engagement data.")
        return 0

    rows = [
        [i + 1, c["title"], c["enrollment_count"], c["completion_count"], c["recent_activity"],
         f"{c['completion_rate']}%", c["popularity_score"], c["difficulty"].capitalize(), c["duration"]]
        for i, c in enumerate(ranked)
    ]
    print(format_table(HEADERS, rows))
    print(f"\nScoring: {analytics_service.SCORING_FORMULA}")
    return 0


def create_admin(db, email: str, name: str, password: str) -> int:
    try:
        user = users.create_user(db, email, password, name, role="admin")
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Admin user created: {user['email']} ({user['_id']})")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="CourseHub maintenance commands")
    sub = parser.add_subparsers(dest="command", required=True)

    popular = sub.add_parser("popular-courses", help="Show the most popular courses based on engagement")
    popular.add_argument("--limit", type=int, default=analytics_service.DEFAULT_POPULAR_LIMIT,
                         help="Number of courses to show")

    admin = sub.add_parser("create-admin", help="Create an administrator account")
    admin.add_argument("--email", required=True)
    admin.add_argument("--name", required=True)
    admin.add_argument("--password", required=True)

    args = parser.parse_args(argv)
    setup_logging(log_level="DEBUG" if settings.DEBUG else "WARNING")

    client = create_mongo_client(settings.MONGO_URI)
    try:
        db = client.get_default_database()
        if args.command == "popular-courses":
            return popular_courses(db, args.limit)
        return create_admin(db, args.email, args.name, args.password)
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
