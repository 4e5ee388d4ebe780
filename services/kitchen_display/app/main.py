import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from services.kitchen_display.app.api.routes import router, get_services
from services.kitchen_display.config import LOG_LEVEL
from services.kitchen_display.init_services import build_services

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    services = build_services(loop=asyncio.get_running_loop())
    app.dependency_overrides[get_services] = lambda: services
    services.start()
    logger.info("Kitchen display started")
    yield
    # Shutdown: consumer threads are joined off the loop
    await asyncio.to_thread(services.stop)


app = FastAPI(title="Kitchen Display", lifespan=lifespan)
app.include_router(router)
