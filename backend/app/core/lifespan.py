import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from .config import settings
from .database import init_db, engine

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- startup ---
    logger.info(f"✅ {settings.APP_NAME} is starting.")

    try:
        await init_db()
    except Exception as e:
        logger.error(f"⛔ Failed to create database tables: {e}", exc_info=True)
        raise

    # --- shutdown ---
    yield
    logger.info(f"✅ {settings.APP_NAME} is shutting down.")
    if engine:
        logger.info("✅ Disposing the database engine.")
        await engine.dispose()
        logger.info("✅ Database engine disposed.")
