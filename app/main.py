# app/main.py

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.endpoints import admin
from app.core.config import settings
from app.core.db import check_db_health, close_db, init_db
from app.core.resources import RESOURCES

# Set up logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup and release them on shutdown"""
    start_time = time.time()
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION}")
    logger.info(f"Environment: {'Development' if settings.DEBUG else 'Production'}")
    logger.info(f"Registered resources: {len(RESOURCES)}")

    try:
        await init_db()
    except Exception as e:
        # The app still starts; requests will retry the connection through get_db
        logger.error(f"Error initializing database: {str(e)}")

    elapsed = time.time() - start_time
    logger.info(f"Application startup completed in {elapsed:.2f} seconds")
    yield
    await close_db()


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(admin.router, prefix=settings.API_V1_STR)


@app.get("/health")
async def health():
    """Database connectivity check"""
    return await check_db_health()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL,
        reload=settings.RELOAD
    )
