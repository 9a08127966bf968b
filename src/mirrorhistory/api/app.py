"""
MirrorHistory FastAPI Application.

HTTP surface over the correlation engines: re-do, forensic, moments,
confrontations, comparison and inconsistencies.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mirrorhistory import __version__
from mirrorhistory.api.routes import (
    compare,
    confrontations,
    forensic,
    inconsistencies,
    moments,
    redo,
)
from mirrorhistory.db.connection import check_connection, init_db
from mirrorhistory.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Configures logging and makes sure the schema exists before serving.
    """
    setup_logging(context="api")

    logger.info("Preparing database schema...")
    init_db()
    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="MirrorHistory API",
    description="Cross-domain temporal correlation over a personal life log",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Vite default
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "MirrorHistory API is running",
        "version": __version__,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    db_status = "healthy" if check_connection() else "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
    }


app.include_router(redo.router)
app.include_router(forensic.router)
app.include_router(moments.router)
app.include_router(confrontations.router)
app.include_router(compare.router)
app.include_router(inconsistencies.router)
