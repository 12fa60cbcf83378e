"""FastAPI dependencies reading per-app collaborators off ``app.state``."""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from modelvault.config import Settings
from modelvault.database import get_db
from modelvault.services.file_storage import FileStorageService
from modelvault.services.record_store import RecordStore
from modelvault.services.suggestions import SuggestionEngine


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(db: AsyncSession = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def get_storage(request: Request) -> FileStorageService:
    return request.app.state.file_storage


def get_suggestion_engine(request: Request) -> SuggestionEngine:
    return request.app.state.suggestion_engine
