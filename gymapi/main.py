import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from gymapi import containers
from gymapi.config import settings
from gymapi.core.exception_handlers import register_exception_handlers
from gymapi.core.logging_middleware import LoggingMiddleware
from gymapi.logging_config import setup_logging
from gymapi.routers import (
    booking_router,
    health_router,
    market_router,
    transaction_router,
    wallet_router,
)

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    load_dotenv("gymapi/.env")
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)
    app.container = containers.Container()  # type: ignore

    register_exception_handlers(app)

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router.router)
    for module in (booking_router, market_router, wallet_router, transaction_router):
        app.include_router(module.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.APP_NAME} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
