"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ticket_sync.api import events, jira, links, webhooks
from ticket_sync.api import settings as settings_routes
from ticket_sync.api.deps import get_settings_store
from ticket_sync.config import settings
from ticket_sync.models.base import init_db

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting Jira ticket sync service")
    init_db()
    if get_settings_store().ensure_defaults():
        logger.info("Stored default Jira integration settings")
    yield
    logger.info("Stopping Jira ticket sync service")


if settings.auth_enabled and (not settings.auth_username or not settings.auth_password):
    raise RuntimeError("AUTH_ENABLED=true requires AUTH_USERNAME and AUTH_PASSWORD to be set")

app = FastAPI(
    title="Jira Ticket Sync Service",
    description="Keep helpdesk tickets and Jira issues in sync",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(settings_routes.router)
app.include_router(links.router)
app.include_router(events.router)
app.include_router(webhooks.router)
app.include_router(jira.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "Jira Ticket Sync"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ticket_sync.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
