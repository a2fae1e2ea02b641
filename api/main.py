"""
API Application Entry Point

Defines the FastAPI application: middleware, routes, exception handlers
and lifecycle (database initialization and the optional in-process job
scheduler).
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import EnvironmentType, get_settings
from api.routes import actions, cron, email, user
from api.utils.error_handlers import add_exception_handlers
from inbox_actions.jobs.cleanup import run_cleanup_job
from inbox_actions.jobs.count_new_emails import run_count_new_emails_job
from inbox_actions.jobs.daily_sync import run_daily_sync_job
from inbox_actions.jobs.scheduler import JobScheduler
from inbox_actions.storage.database import configure_database, init_db
from inbox_actions.utils.logging_setup import setup_logging

logger = logging.getLogger("api")


def build_scheduler(settings) -> JobScheduler:
    """Scheduler with the daily sync, the nightly cleanup and the optional email count."""
    scheduler = JobScheduler(settings.SCHEDULER_TIMEZONE)
    scheduler.add_daily_job("daily-sync", run_daily_sync_job, settings.DAILY_SYNC_TIME)
    scheduler.add_daily_job("cleanup", run_cleanup_job, settings.CLEANUP_TIME)
    scheduler.add_interval_job("count-new-emails", run_count_new_emails_job, settings.EMAIL_COUNT_INTERVAL_SECONDS)
    return scheduler


def create_application() -> FastAPI:
    """
    Create and configure FastAPI application instance.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()
    setup_logging(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE or None)

    if settings.DATABASE_URL:
        configure_database(settings.DATABASE_URL)

    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version=settings.API_VERSION,
        docs_url="/docs" if settings.ENVIRONMENT != EnvironmentType.PRODUCTION else None,
        redoc_url="/redoc" if settings.ENVIRONMENT != EnvironmentType.PRODUCTION else None,
        debug=settings.DEBUG
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=settings.CORS_METHODS,
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(actions.router)
    app.include_router(user.router)
    app.include_router(email.router)
    app.include_router(cron.router)

    app.state.scheduler = build_scheduler(settings) if settings.SCHEDULER_ENABLED else None

    @app.on_event("startup")
    async def startup_event():
        """Create tables and start the scheduler."""
        logger.info("API service starting up")
        init_db()
        if app.state.scheduler is not None:
            app.state.scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("API service shutting down")
        if app.state.scheduler is not None:
            await app.state.scheduler.stop()

    @app.get("/health", tags=["Monitoring"])
    async def health_check():
        """API health check endpoint."""
        return {"status": "healthy"}

    logger.info(f"Application initialized in {settings.ENVIRONMENT.value} environment")
    return app


app = create_application()
