import logging
from pathlib import Path
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv

# Load .env file BEFORE importing settings to ensure env vars are available
# When running from backend/ directory
env_path = Path(__file__).parent.parent / ".env"
if not env_path.exists():
    # When running from repository root
    env_path = Path(__file__).parent.parent.parent / ".env"

load_dotenv(dotenv_path=env_path)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.realtime import router as realtime_router
from .config import Settings, settings as default_settings
from .protocol import utc_timestamp
from .services.translation_service import build_translation_service

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    logger.info(f"Relay ready, CORS origins: {app.state.settings.cors_origins}")
    yield
    # Shutdown - close HTTP clients
    await app.state.translation_service.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    logger.info(f"OPENAI_API_KEY present: {bool(settings.openai_api_key)}")

    app = FastAPI(title="LiveTranslate relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.translation_service = build_translation_service(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(realtime_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": utc_timestamp()}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    configure_logging(default_settings.log_level)
    uvicorn.run(app, host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
