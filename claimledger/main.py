import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from claimledger import __version__
from claimledger.core.config import get_settings
from claimledger.core.container import ApplicationContainer, build_container
from claimledger.infrastructure.database.session import init_db
from claimledger.interfaces.http import create_api_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(container: Optional[ApplicationContainer] = None) -> FastAPI:
    settings = container.settings if container is not None else get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.container = container or build_container(settings)
        await init_db(app.state.container.engine)
        logger.info("Signing claims as %s on %s", app.state.container.key_manager.public_key_hex, settings.signing.network)
        yield
        await app.state.container.dispose()

    app = FastAPI(
        title=settings.project_name,
        description="Signed claim and single-execution engine",
        version=__version__,
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", summary="Liveness probe")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "claimledger.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.server.reload,
    )


if __name__ == "__main__":
    run()
