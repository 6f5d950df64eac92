import uvicorn
from dishka import AsyncContainer
from dishka.integrations.fastapi import setup_dishka
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import auth, health
from app.core.container import create_app_container
from app.core.correlation import CorrelationMiddleware
from app.core.dishka_lifespan import lifespan
from app.core.exceptions import configure_exception_handlers
from app.core.logging import logger
from app.settings import Settings, get_settings


def create_app(settings: Settings | None = None, container: AsyncContainer | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    setup_dishka(container or create_app_container(settings), app)

    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Origin",
            "X-Requested-With",
            "X-Correlation-ID",
            "X-Request-ID",
        ],
        expose_headers=["Content-Length", "X-Correlation-ID"],
    )
    logger.info("CORS middleware configured")

    app.include_router(auth.router, prefix=settings.API_PREFIX)
    app.include_router(health.router, prefix=settings.API_PREFIX)
    logger.info("All routers configured")

    configure_exception_handlers(app)
    logger.info("Exception handlers configured")

    return app


if __name__ == "__main__":
    settings = get_settings()

    logger.info(
        "Starting uvicorn server",
        extra={"host": settings.SERVER_HOST,
               "port": settings.SERVER_PORT},
    )
    uvicorn.run(
        create_app(settings),
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
    )
