"""
Tally → VT sync service – FastAPI application entry point.

Run with:
    uvicorn tally_sync.main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from tally_sync.api.routes import router
from tally_sync.core.config import settings
from tally_sync.core.database import create_db_and_tables
from tally_sync.core.logging import setup_logging


class SyncCORSMiddleware(CORSMiddleware):
    """CORS with an empty body on preflight replies."""

    def preflight_response(self, request_headers) -> Response:
        reply = super().preflight_response(request_headers)
        headers = {
            k: v for k, v in reply.headers.items() if k not in ("content-length", "content-type")
        }
        return Response(status_code=reply.status_code, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    setup_logging()
    logger.info("Starting Tally sync service …")
    create_db_and_tables()
    logger.info("Database tables ready")
    yield
    logger.info("Tally sync service shut down")


app = FastAPI(
    title="Tally Sync API",
    description="Synchronises mirrored Tally data into the tenant-scoped VT warehouse",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS – the sync trigger is called straight from the browser
app.add_middleware(
    SyncCORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
def root():
    return {"message": "Tally Sync API", "docs": "/docs"}
