"""
FastAPI application entry point
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lifepath.config import settings, validate_config
from lifepath.dependencies import get_registry
from lifepath.routers import generate_router, simulation_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Life Path Simulator API",
    description="Graph engine behind the interactive life timeline",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(simulation_router, prefix=settings.api_prefix)
app.include_router(generate_router, prefix=settings.api_prefix)


@app.on_event("startup")
async def startup_event():
    if validate_config():
        logger.info("Configuration OK (text generator: %s)", settings.text_generator)
    else:
        logger.warning("Configuration check failed, review environment variables")
    logger.info("API docs: http://localhost:8000/docs")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop every live session's timers."""
    get_registry().shutdown()


@app.get("/")
async def root():
    return {
        "message": "Life Path Simulator API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "sessions": len(get_registry().session_ids()),
    }
