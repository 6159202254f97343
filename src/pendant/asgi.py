import fastapi
from contextlib import asynccontextmanager
from loguru import logger

from pendant.modules.config import load_config_from_env
from pendant.routers.health import factory as health_factory
from pendant.routers.jog import factory as jog_factory
from pendant.schemas.config import PendantConfig
from pendant.services.pendant import create_pendant_service
from pendant import utils

@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    logger.info("Starting keyboard-pendant")

    config: PendantConfig = app.state.config
    try:
        service = create_pendant_service(config)
    except Exception as e:
        logger.error(f"Failed to start pendant service: {e}")
        raise
    service.start()
    app.state.pendant_service = service

    yield

    logger.info("Shutting down keyboard-pendant")
    await service.close()
    del app.state.pendant_service

def factory(config: PendantConfig | None = None):
    if config is None:
        config = load_config_from_env()
    utils.setup_loguru(config.log_level)

    app = fastapi.FastAPI(lifespan=lifespan)
    app.state.config = config

    app.include_router(health_factory(app))
    app.include_router(jog_factory(app))

    return app
