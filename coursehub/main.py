# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import run_in_threadpool
import logging
import sys
from config import settings
from deps import create_mongo_client, create_redis_client
from logging_config import setup_logging
from middleware.error_handler import ErrorHandlerMiddleware
from repos import users, courses, progress, contacts
from routers.health import router as health_router
from routers.user_auth import auth
from routers.home_route import home
from routers.courses_route import courses as courses_routes
from routers.lessons_route import lessons
from routers.admin_route import admin, messages
from routers.analytics_route import analytics


setup_logging(log_level=settings.log_level, log_file=settings.log_file)

logger = logging.getLogger(__name__)


app = FastAPI(
    title="CourseHub API",
    description="Course delivery with lesson progress tracking and an admin back-office",
    version="1.0.0"
)


def ensure_indexes(db) -> None:
    for repo in (users, courses, progress, contacts):
        repo.ensure_indexes(db)


@app.on_event("startup")
async def startup():
    logger.info("Starting application...")

    try:
        app.state.mongo_client = create_mongo_client(settings.MONGO_URI)
        app.state.db = app.state.mongo_client.get_default_database()
        logger.info("MongoDB connection established")
    except Exception as e:
        logger.critical(f"Failed to connect to MongoDB: {str(e)}")
        sys.exit(1)

    try:
        app.state.redis = create_redis_client(settings.REDIS_URL)
        await app.state.redis.ping()
        logger.info("Redis connection established")
    except Exception as e:
        logger.critical(f"Failed to connect to Redis: {str(e)}")
        sys.exit(1)

    # The enrollment uniqueness guarantee depends on these
    try:
        await run_in_threadpool(ensure_indexes, app.state.db)
        logger.info("Database indexes ensured")
    except Exception as e:
        logger.critical(f"Failed to ensure database indexes: {str(e)}")
        sys.exit(1)

    logger.info("Application startup completed successfully")

@app.on_event("shutdown")
async def shutdown():
    logger.info("Starting application shutdown...")

    try:
        if hasattr(app.state, 'redis'):
            await app.state.redis.close()
            logger.info("Redis connection closed")
    except Exception as e:
        logger.error(f"Error closing Redis connection: {str(e)}")

    try:
        if hasattr(app.state, 'mongo_client'):
            app.state.mongo_client.close()
            logger.info("MongoDB connection closed")
    except Exception as e:
        logger.error(f"Error closing MongoDB connection: {str(e)}")

    logger.info("Application shutdown completed")

# Error handling middleware (should be first)
app.add_middleware(ErrorHandlerMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health_router)
app.include_router(auth.router)
app.include_router(home.router)
app.include_router(courses_routes.router)
app.include_router(lessons.router)
app.include_router(admin.router)
app.include_router(messages.router)
app.include_router(analytics.router)
