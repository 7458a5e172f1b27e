"""
Application entry point for the gamification engine.

Mounts the gamification router on a FastAPI application and manages the
service lifecycle.

Usage:
    - Direct: python -m gamification_engine.main
    - ASGI server: uvicorn gamification_engine.main:app
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from gamification_engine.common.config import AppConfig, get_config
from gamification_engine.common.gamification.controllers import router as gamification_router
from gamification_engine.common.gamification.service import (
    initialize_gamification_service,
    shutdown_gamification_service,
)
from gamification_engine.common.logger import app_logger, configure_logger

# Setup module logger
logger = app_logger.getChild("main")


def create_app(app_config: Optional[AppConfig] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_config: Configuration to run with, defaults to the loaded one
    """
    app_config = app_config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await initialize_gamification_service(app_config)
        logger.info("Application startup complete")
        try:
            yield
        finally:
            await shutdown_gamification_service()
            logger.info("Application shutdown complete")

    app = FastAPI(
        title=app_config.app_name,
        description="XP, levels, badges and achievements for learning activity",
        version=app_config.version,
        lifespan=lifespan
    )
    app.include_router(gamification_router, prefix=app_config.api.prefix)

    @app.get("/")
    async def root():
        return {"name": app_config.app_name, "version": app_config.version}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_config()
    configure_logger(
        level=settings.logging.level,
        use_json=settings.logging.use_json,
        log_file=settings.logging.file_path
    )
    uvicorn.run(app, host=settings.api.host, port=settings.api.port)
