"""
FastAPI application for the glossary service.

Usage:
    uvicorn termguard.api.main:app --host 0.0.0.0 --port 8000
"""
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from termguard import __version__
from termguard.config.logging_config import get_logger
from termguard.api.glossary_router import router as glossary_router

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Build the FastAPI application with the glossary router."""
    app = FastAPI(
        title="termguard API",
        description="Glossary term matching and DeepL glossary synchronization",
        version=__version__,
    )
    app.include_router(glossary_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    logger.info("Glossary API initialized")
    return app


app = create_app()
