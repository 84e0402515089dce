from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from storyweave.api.v1 import health, news, scheduler, stories
from storyweave.bootstrap import Services, build_services
from storyweave.config import Settings, settings as default_settings
from storyweave.exceptions import StoryNotFoundError


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Create the FastAPI application

    Services are built from `settings` unless passed in (tests).
    """
    settings = settings or (services.settings if services else default_settings)

    # Lifespan context manager for startup and shutdown
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"Starting {settings.APP_NAME}...")
        app_services = services or build_services(settings)
        app.state.services = app_services

        logger.info(f"Initializing database at {settings.DATABASE_URL}")
        await app_services.store.initialize()
        logger.info("Database initialized successfully")

        if settings.DATABASE_ONLY_MODE:
            logger.warning("Database-only mode: no outbound NewsAPI calls will be made")

        if settings.RECHECK_ENABLED:
            app_services.rechecker.start()

        yield

        # Shutdown
        logger.info(f"Shutting down {settings.APP_NAME}...")
        app_services.rechecker.shutdown()
        await app_services.store.close()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="News story deduplication, clustering and analysis API",
        lifespan=lifespan
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoryNotFoundError)
    async def story_not_found_handler(request: Request, exc: StoryNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    # Include routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(stories.router, prefix="/api/v1")
    app.include_router(news.router, prefix="/api/v1")
    app.include_router(scheduler.router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "docs": "/docs",
            "health": "/api/v1/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "storyweave.main:app",
        host="0.0.0.0",
        port=8000,
        reload=default_settings.DEBUG
    )
