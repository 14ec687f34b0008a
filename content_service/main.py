from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from content_service.core.background_tasks import BackgroundTaskManager
from content_service.core.config import settings
from content_service.core.exceptions import ContentServiceError
from content_service.database.engine import Database
from content_service.routers import blog_settings, posts
from content_service.schemas.common import ErrorResponse
from content_service.services.scheduler_service import ScheduledPublisher

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # NOTE: Database migrations are managed by Alembic.
    # Run: alembic upgrade head
    logger.info("Starting application...")

    database = Database.from_settings(settings)
    app.state.database = database
    if settings.AUTO_CREATE_TABLES:
        database.create_all()
        logger.info("✓ Database tables created")

    background_task_manager = BackgroundTaskManager.from_settings(
        settings,
        publisher=ScheduledPublisher(database.session),
    )
    app.state.background_task_manager = background_task_manager
    await background_task_manager.start()
    logger.info("✓ Background tasks started")

    logger.info("Application startup complete")

    yield

    # Cleanup on shutdown
    logger.info("Application shutdown initiated...")

    await background_task_manager.stop()
    logger.info("✓ Background tasks stopped")

    database.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Blog Content Service",
    description="Posts, drafts, versions, scheduled publishing, view counts and blog settings",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(ContentServiceError)
async def content_service_error_handler(request: Request, exc: ContentServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_error(exc).model_dump(),
    )


app.include_router(posts.router)          # Posts: /api/posts/*
app.include_router(blog_settings.router)  # Settings: /api/blog-settings


@app.get("/")
def read_root():
    return {
        "message": "Welcome to the Blog Content Service",
        "version": "1.0.0",
        "modules": {
            "posts": "/api/posts/* (posts, drafts, versions, scheduling, views)",
            "settings": "/api/blog-settings (site-wide blog settings)"
        },
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}
