"""
Shoecart - Main FastAPI Application

Single entry point for the Cart Storage API.
Deployed as one serverless function on Vercel.
"""
import os
import sys
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Make the project root importable when Vercel runs this file directly
_base_path = Path(__file__).parent.parent
if str(_base_path) not in sys.path:
    sys.path.insert(0, str(_base_path))

from shoecart.db import close_clients
from shoecart.logging import get_logger
from shoecart.routers import cart_router
from shoecart.services.database import reset_database

logger = get_logger(__name__)

ALLOWED_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]


# ==================== FASTAPI APP ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    logger.info("Shoecart API starting")
    yield
    reset_database()
    await close_clients()
    logger.info("Shoecart API stopped")


app = FastAPI(
    title="Shoecart",
    description="Shoe storefront cart storage API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(cart_router)


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "shoecart"}
