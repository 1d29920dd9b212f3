import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_ledger import __version__
from voice_ledger.api import create_api_router
from voice_ledger.core.config import Settings, get_settings
from voice_ledger.core.container import ApplicationContainer
from voice_ledger.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ApplicationContainer = app.state.container
    await container.startup()
    logger.info("%s %s started (%s)", container.settings.project_name, __version__, container.settings.environment)
    yield
    await container.shutdown()


def create_app(settings: Optional[Settings] = None, container: Optional[ApplicationContainer] = None) -> FastAPI:
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings.logging)

    app = FastAPI(
        title=settings.project_name,
        description="Balance ledger and call pricing engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container or ApplicationContainer.build(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health")
    async def health():
        snapshot = app.state.container.pricing.cached
        return {"status": "ok", "version": __version__, "pricing_version": snapshot.version}

    return app


app = create_app()
