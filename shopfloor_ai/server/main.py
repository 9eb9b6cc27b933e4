"""
Main Application Entry Point.

This module initializes the FastAPI application, configures middleware (CORS),
exception handlers and monitoring, and includes all API routers.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopfloor_ai.core.logging_config import get_logger, setup_logging
from shopfloor_ai.core.monitoring import initialize_logfire

from .api.v1 import health, runs, tools
from .core import constant
from .core.database import init_db
from .exception_handlers import setup_exception_handlers

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    Creates missing tables on startup. A database that cannot be reached is
    logged and the server still starts, so ``/health`` stays available.
    """
    try:
        logger.info("Starting up ShopFloor-AI Server...")
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    logger.info("Shutting down ShopFloor-AI Server...")


app = FastAPI(
    title=constant.PROJECT_NAME,
    description="""
    ShopFloor-AI Server API

    Start planner runs that turn a shop user's goal into work orders, lines,
    inspections, invoices and fleet work orders, and follow every step of a
    run through its persisted event log or a live SSE stream.
    """,
    version="0.1.0",
    openapi_url=f"{constant.API_V1_STR}/openapi.json",
    docs_url=f"{constant.API_V1_STR}/docs",
    redoc_url=f"{constant.API_V1_STR}/redoc",
    lifespan=lifespan,
)

# Set all CORS enabled origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)
initialize_logfire(app)

app.include_router(health.router, tags=["health"])
app.include_router(runs.router, prefix=f"{constant.API_V1_STR}/runs", tags=["runs"])
app.include_router(tools.router, prefix=f"{constant.API_V1_STR}/tools", tags=["tools"])
