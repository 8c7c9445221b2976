"""
FastAPI application for the FODMAP recipe API

Recipes, ingredients, categories and tags on PostgreSQL. The connection pool is
opened in the lifespan hook and shared with every route through app.state.
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

import sys
import os

# Allow flat imports (core, db, routes...) when started from the repository root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.config import settings
from core.exceptions import RecipeAPIException
from core.exception_handlers import (
    recipe_api_exception_handler,
    starlette_http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)
from db.db_core import Database
from db.executor import PooledExecutor
from routes import categories, health, ingredients, recipes, tags
from models.responses import MessageResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its duration and tag it with an X-Request-ID"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        log = logger.warning if response.status_code >= 400 else logger.info
        log(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({duration_ms:.1f}ms) [{request_id}]"
        )
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI application"""
    # Startup
    logger.info("Starting FODMAP Recipe API")
    logger.info(f"Environment: {settings.environment}")
    executor = PooledExecutor.from_settings(settings)
    await executor.open()
    app.state.executor = executor
    app.state.db = Database(executor)

    yield

    # Shutdown
    logger.info("Shutting down FODMAP Recipe API")
    await executor.close()
    app.state.db = None
    app.state.executor = None


# Create FastAPI app
app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    debug=settings.debug,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# Add exception handlers
app.add_exception_handler(RecipeAPIException, recipe_api_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)

app.include_router(recipes.router)
app.include_router(ingredients.router)
app.include_router(categories.router)
app.include_router(tags.router)
app.include_router(health.router)


# Root endpoint
@app.get("/", response_model=MessageResponse)
async def root():
    """Root endpoint returning API information"""
    return MessageResponse(
        message=f"{settings.api_title} v{settings.api_version} - Environment: {settings.environment}"
    )


# For local development
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting development server...")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
