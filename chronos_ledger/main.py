"""
CHRONOS Bancos Ledger: FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from chronos_ledger.config import get_settings
from chronos_ledger.logging_config import setup_logging
from chronos_ledger.models.base import SessionLocal
from chronos_ledger.realtime import ChangeFeed
from chronos_ledger.services.banco_service import BancoService
from chronos_ledger.api.health import router as health_router
from chronos_ledger.api.bancos import router as bancos_router
from chronos_ledger.api.movimientos import router as movimientos_router
from chronos_ledger.api.transferencias import router as transferencias_router
from chronos_ledger.api.realtime import router as realtime_router

settings = get_settings()

setup_logging(settings.LOG_LEVEL)

# One feed per process, fed by every session SessionLocal creates
change_feed = ChangeFeed()
change_feed.attach(SessionLocal)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SEED_DEFAULT_BANCOS:
        with SessionLocal() as db:
            BancoService(db).ensure_default_bancos()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Bank and vault ledger for the CHRONOS distribution business",
    lifespan=lifespan,
)

app.state.change_feed = change_feed
app.state.session_factory = SessionLocal

# Register routers
app.include_router(health_router)
app.include_router(bancos_router)
app.include_router(movimientos_router)
app.include_router(transferencias_router)
app.include_router(realtime_router)
