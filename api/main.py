"""
FastAPI Application - Survey Mindset Pipeline API
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings, ensure_directories
from database import init_engine, close_engine, create_tables, seed_questions_from_file
from utils import logger, init_logging
from .routes import router

init_logging(app_name="api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting API server")

    ensure_directories()
    await init_engine()
    await create_tables()
    if settings.QUESTIONS_FILE:
        count = await seed_questions_from_file(settings.QUESTIONS_FILE)
        logger.info(f"Loaded {count} catalog questions from {settings.QUESTIONS_FILE}")

    yield

    logger.info("Shutting down API server")
    await close_engine()


app = FastAPI(
    title="Survey Mindset Pipeline",
    description="Survey intake and asynchronous regulatory-mindset profiling",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Survey Mindset Pipeline",
        "version": "1.0.0",
        "status": "running"
    }


def main():
    """Serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
