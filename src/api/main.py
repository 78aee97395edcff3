"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
selects the credential store and manages lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PostgresKeyValueStore,
    run_migrations,
)
from src.api.dependencies import build_session
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.ports import KeyValueStore

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Donation API v1 - Wallet custody, registry verification and token donations",
    },
]


def create_store(settings: Settings) -> tuple[KeyValueStore, ConnectionPool | None]:
    """
    Create the configured credential store.

    Returns:
        The store, and the connection pool backing it when it is postgres
    """
    if settings.credential_store == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        return PostgresKeyValueStore(pool), pool
    if settings.credential_store == "memory":
        logger.warning("Using in-memory credential store; the wallet will not survive a restart")
        return InMemoryKeyValueStore(), None
    return JsonFileKeyValueStore(settings.credential_file), None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Opens the credential store (running migrations for postgres)
    - Builds the donation session and resumes a persisted wallet
    - Stops polling and closes the chain client, HTTP client and pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")
    store, pool = create_store(settings)
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds))

    session = build_session(settings, store, http_client)
    await session.resume()

    app.state.pool = pool
    app.state.session = session

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await session.close()
    await http_client.aclose()
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="donatestream",
    description="Token donations to registry-verified streaming identities",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint.

    Returns 200 OK with the wallet connection state. With the postgres
    store, raises if the database connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    session = request.app.state.session
    return {"status": "healthy", "wallet": "connected" if session.connected else "disconnected"}
