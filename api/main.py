"""
Translation Ordering API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from services.errors import ConfigurationError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Translation Ordering API",
    description="REST API for quoting, ordering and paying for document translations",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS from a comma-separated list; defaults to the public site
allowed_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "https://tarjuman.org").split(",")
    if origin.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConfigurationError)
def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Server configuration error"})


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "translation-ordering-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Translation Ordering API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import admin, orders, payments, quotes, webhooks

app.include_router(quotes.router, prefix="/api/v1", tags=["Quotes"])
app.include_router(orders.router, prefix="/api/v1", tags=["Orders"])
app.include_router(payments.router, prefix="/api/v1", tags=["Payments"])
app.include_router(admin.router, prefix="/api/v1", tags=["Admin"])
app.include_router(webhooks.router, prefix="/api/v1", tags=["Webhooks"])
