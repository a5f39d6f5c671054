"""
Stock Inventory API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from db.session import Base, engine

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Stock Inventory API starting up", version=settings.app_version)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    logger.info("Stock Inventory API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Stock inventory: products, locations, batches, movements and alerts",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from api.v1.routers import (
    alerts,
    batches,
    dashboard,
    functions,
    locations,
    movements,
    products,
)

app.include_router(products.router)
app.include_router(locations.router)
app.include_router(batches.router)
app.include_router(movements.router)
app.include_router(alerts.router)
app.include_router(dashboard.router)
app.include_router(functions.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}
