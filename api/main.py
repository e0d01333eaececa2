"""
FastAPI Application - Opportunity Scoring Service API
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import settings, ensure_directories
from database import close_engine, create_tables, init_engine
from scheduler import ScoringScheduler
from services import get_services
from utils.logger import init_logging
from .routes import router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    ensure_directories()
    init_logging("api")
    await init_engine()
    await create_tables()

    scheduler = ScoringScheduler(get_services())
    scheduler.start()
    logger.info("Opportunity scoring API started")
    yield
    # Shutdown
    scheduler.stop()
    await close_engine()


app = FastAPI(
    title="Opportunity Scoring Service",
    description="Ranks property listings for investors with rule and AI scoring",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify actual origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Opportunity Scoring Service",
        "version": "1.0.0",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.API_HOST, port=settings.API_PORT)
