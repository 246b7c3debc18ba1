import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from device_inventory import __version__
from device_inventory.api import create_api_router
from device_inventory.core.config import get_settings
from device_inventory.core.logging import configure_logging
from device_inventory.core.metrics import metrics_response, record_request_metrics
from device_inventory.infrastructure.database import dispose_engine, init_db
from device_inventory.interfaces.http.errors import register_exception_handlers
from device_inventory.schemas import HealthResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.database.create_tables:
        await init_db()
    logger.info("%s %s started (%s)", settings.project_name, __version__, settings.environment)
    yield
    await dispose_engine()
    logger.info("%s stopped", settings.project_name)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.project_name,
        description="CRUD service for the device inventory",
        version=__version__,
        lifespan=lifespan,
    )
    register_exception_handlers(app)
    app.middleware("http")(record_request_metrics)
    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check():
        return HealthResponse()

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return metrics_response()

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "device_inventory.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
    )


if __name__ == "__main__":
    run()
