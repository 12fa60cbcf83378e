"""FastAPI application factory."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from modelvault.config import Settings, settings as default_settings
from modelvault.database import build_engine, build_session_factory
from modelvault.errors import ExternalSuggestionError, VaultError
from modelvault.models import Base
from modelvault.routes.files import router as files_router
from modelvault.services.file_storage import FileStorageService
from modelvault.services.suggestions import SuggestionClient, SuggestionEngine

logger = logging.getLogger(__name__)


def build_suggestion_engine(settings: Settings) -> SuggestionEngine:
    if not settings.suggestions_configured:
        return SuggestionEngine()
    client = SuggestionClient(
        base_url=settings.SUGGEST_API_URL,
        model=settings.SUGGEST_MODEL,
        api_key=settings.SUGGEST_API_KEY,
        timeout=settings.SUGGEST_TIMEOUT_SECONDS,
    )
    return SuggestionEngine(client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, dispose the engine on shutdown."""
    engine = app.state.engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(
        "Model vault ready (storage=%s, suggestions=%s)",
        app.state.file_storage.base_path,
        "external" if app.state.suggestion_engine.external_available else "local only",
    )

    yield

    await engine.dispose()


async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
    content = {"error": str(exc), "code": exc.code}
    if isinstance(exc, ExternalSuggestionError):
        content["status"] = exc.status
        logger.error("Suggestion failed for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Model Vault API",
        version="1.0.0",
        description="Local vault for STL and 3MF model files.",
        lifespan=lifespan,
    )

    engine = build_engine(settings.DATABASE_URL)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.file_storage = FileStorageService(settings.FILE_STORAGE_PATH)
    app.state.suggestion_engine = build_suggestion_engine(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(VaultError, vault_error_handler)

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok"}

    app.include_router(files_router)
    return app
