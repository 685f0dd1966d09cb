"""
Beat Store Checkout API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Beat Store Checkout API",
    description="REST API for purchasing licensed beats and finalizing processor returns",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "beat-store-checkout-api"
    }


@app.get("/api", tags=["Root"])
def api_info():
    """
    API information.
    """
    return {
        "message": "Beat Store Checkout API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import auth, landing, purchases

app.include_router(landing.router, tags=["Landing"])
app.include_router(purchases.router, prefix="/api/v1", tags=["Purchases"])
app.include_router(auth.router, prefix="/api/v1", tags=["Auth"])
