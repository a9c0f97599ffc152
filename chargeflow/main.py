import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chargeflow import __version__
from chargeflow.core.config import get_settings
from chargeflow.core.container import ApplicationContainer, get_container
from chargeflow.interfaces.http import create_api_router
from chargeflow.schemas import HealthResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ApplicationContainer = app.state.container
    await container.startup()
    logger.info("%s %s started (livemode=%s)", container.settings.project_name, __version__, container.settings.livemode)
    try:
        yield
    finally:
        await container.shutdown()


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    container = container or get_container()
    settings = container.settings
    app = FastAPI(
        title=settings.project_name,
        description="Charge lifecycle and webhook dispatch service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(version=__version__, livemode=settings.livemode)

    return app


def run() -> None:
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    uvicorn.run(
        "chargeflow.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
    )


if __name__ == "__main__":
    run()
