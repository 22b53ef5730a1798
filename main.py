from __future__ import annotations

import logging

from fastapi import FastAPI

from app.core.config import settings
from app.core.logging import configure_logging
from app.core.middleware import OrganizationMiddleware
from app.db.base import Base
from app.db.session import engine

# Register models
from app.db import models  # noqa: F401

from services.clients.api import router as clients_router
from services.periods.api import router as periods_router
from services.rollforward.api import router as rollforward_router
from services.documents.api import router as documents_router
from services.signoff.api import router as signoff_router
from services.admin.events_api import router as events_admin_router

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Fieldwork")
app.add_middleware(OrganizationMiddleware)

app.include_router(clients_router)
app.include_router(periods_router)
app.include_router(rollforward_router)
app.include_router(documents_router)
app.include_router(signoff_router)
app.include_router(events_admin_router)


@app.on_event("startup")
async def _startup():
    # Dev-friendly schema creation (alembic owns real upgrades)
    if settings.auto_create_schema:
        Base.metadata.create_all(bind=engine)
    logger.info("fieldwork started (env=%s)", settings.app_env)


@app.get("/health")
def health():
    return {"ok": True}
