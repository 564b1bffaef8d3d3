import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import router
from app.core.config import settings
from app.services.orchestrator import build_orchestrator

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("maturity-service")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one orchestrator per process, shared by all requests
    app.state.orchestrator = build_orchestrator(settings)
    log.info(
        "orchestrator ready scorer=%s confidence=%s explainer=%s settle=%.2fs",
        settings.SCORER, settings.CONFIDENCE, settings.EXPLAINER, settings.SETTLE_DELAY_S,
    )
    yield


app = FastAPI(title="Mango Maturity Service", version="0.1.0", lifespan=lifespan)
app.include_router(router)
