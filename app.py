#!/usr/bin/env python3
"""
Main entry point for the link registry service.

The registry runs a single in-process writer, so the server always runs one
uvicorn worker; async I/O handles concurrent connections within it.

Usage:
    python app.py

Environment variables:
    STORAGE_BACKEND - memory, json, redis or postgres (default json)
    DATA_DIR - Directory for the json backend
    REDIS_URL - Redis connection URL for the redis backend
    DATABASE_URL - PostgreSQL connection URL for the postgres backend
    BASE_URL - Base URL for short links
    PORT - Port to listen on
    SEED_DEMO_DATA - Set to true to create demo accounts and links on first start
    LOG_LEVEL - Logging level
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from config import Config, load_config
from linkcore import RegistryStore, seed_demo_data
from linkcore.database import (
    InMemoryStorage,
    JsonFileStorage,
    PostgresStorage,
    RedisStorage,
    RegistryStorageBase,
)
from linkcore.common.logging_config import setup_logging
from web_app import build_services, create_app


# Global instance for graceful shutdown
store_instance = None


def build_storage(config: Config, logger) -> RegistryStorageBase:
    """Pick the persistence backend named in the configuration."""
    if config.storage_backend == "memory":
        return InMemoryStorage()
    if config.storage_backend == "redis":
        if not config.redis_url:
            raise ValueError("REDIS_URL is required for the redis storage backend")
        return RedisStorage(
            redis_url=config.redis_url,
            key_prefix=config.redis_key_prefix,
            logger=logger,
        )
    if config.storage_backend == "postgres":
        return PostgresStorage(db_config=config.database_url, logger=logger)
    return JsonFileStorage(directory=config.data_dir, logger=logger)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global store_instance

    config = app.state.config
    logger = app.state.logger

    logger.info(f"Starting link registry with {config.storage_backend} storage...")

    store_instance = RegistryStore(build_storage(config, logger), logger=logger)
    await store_instance.open()

    if config.seed_demo_data:
        await seed_demo_data(store_instance, logger=logger)

    app.state.services = build_services(store_instance, config, logger=logger)

    logger.info("Service started successfully")

    yield

    logger.info("Shutting down link registry...")
    app.state.services = None
    if store_instance and store_instance.is_open:
        await store_instance.close()
    logger.info("Service stopped")


def main():
    """Main entry point."""
    config = load_config()

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("Link Registry Service")
    logger.info(f"Configuration: {config.model_dump(exclude={'database_url', 'redis_url'})}")

    app = create_app(services=None, config=config)  # services are wired in lifespan
    app.state.logger = logger
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        workers=config.workers,
        log_level=config.log_level.lower(),
        access_log=True,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
