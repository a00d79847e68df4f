"""
Disclosure Ingest - FastAPI Application

Main FastAPI application with CORS, the scheduler lifecycle and router
registration.
Run with: uvicorn api.main:app --port 8000
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import scheduler, scrape, system
from config.settings import get_config
from modules.db_manager import get_db
from modules.scheduler import IngestScheduler

api_logger = logging.getLogger("disclosure_ingest.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the database manager and the run scheduler for the app's lifetime."""
    app.state.db = get_db()
    app.state.scheduler = IngestScheduler()
    if get_config().scheduler.autostart:
        app.state.scheduler.start_scheduler()
    api_logger.info("Disclosure Ingest API starting...")
    try:
        yield
    finally:
        app.state.scheduler.shutdown()
        api_logger.info("Disclosure Ingest API shutting down...")


app = FastAPI(
    title="Disclosure Ingest API",
    description="Ingestion runs and schedule control for financial disclosure data",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(scrape.router, prefix="/api", tags=["Scrape"])
app.include_router(scheduler.router, prefix="/api", tags=["Scheduler"])
app.include_router(system.router, prefix="/api", tags=["System"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API health check."""
    return {
        "status": "healthy",
        "service": "Disclosure Ingest API",
        "version": "1.0.0",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000)
