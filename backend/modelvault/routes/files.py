"""Files API routes."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File as FastAPIFile, Query, UploadFile
from fastapi.responses import FileResponse

from modelvault.config import Settings
from modelvault.errors import NotFoundError, ValidationError
from modelvault.models.file_record import FileRecord, new_file_id
from modelvault.routes.dependencies import (
    get_settings,
    get_storage,
    get_store,
    get_suggestion_engine,
)
from modelvault.schemas.file import (
    AutotagResponse,
    BulkTagsRequest,
    BulkTagsResponse,
    DeleteResponse,
    FileItem,
    FileItemResponse,
    FileListResponse,
    TagsUpdate,
)
from modelvault.services.file_storage import FileStorageService
from modelvault.services.record_store import RecordStore
from modelvault.services.suggestions import SuggestionEngine
from modelvault.services.upload_gate import admit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["files"])


async def _get_or_404(store: RecordStore, file_id: str) -> FileRecord:
    record = await store.get(file_id)
    if record is None:
        raise NotFoundError("Not found")
    return record


@router.get("", response_model=FileListResponse)
async def list_files(
    extension: Optional[str] = Query(None, description="Only files with this extension"),
    tag: Optional[str] = Query(None, description="Only files carrying this tag"),
    store: RecordStore = Depends(get_store),
):
    """List all files, newest first."""
    records = await store.list(extension=extension, tag=tag)
    return {"items": [FileItem.from_record(r) for r in records]}


@router.post("", response_model=FileItemResponse, status_code=201)
async def upload_file(
    file: Optional[UploadFile] = FastAPIFile(None),
    store: RecordStore = Depends(get_store),
    storage: FileStorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Upload an STL/3MF file and create its record with no tags."""
    if file is None:
        raise ValidationError("File missing.")
    ticket = admit(file.filename)

    contents = await file.read()
    if len(contents) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(f"File exceeds the {settings.MAX_UPLOAD_BYTES} byte upload limit.")

    await storage.save(contents, ticket.storage_name)
    record = FileRecord(
        id=new_file_id(),
        original_name=file.filename,
        storage_name=ticket.storage_name,
        extension=ticket.extension,
        size=len(contents),
        mime_type=file.content_type or "",
        tags="",
    )
    try:
        record = await store.create(record)
    except Exception:
        await storage.delete(ticket.storage_name)
        raise

    logger.info("Stored %s as %s (%d bytes)", record.original_name, record.storage_name, record.size)
    return {"item": FileItem.from_record(record)}


@router.post("/tags/bulk", response_model=BulkTagsResponse)
async def bulk_update_tags(
    body: BulkTagsRequest,
    store: RecordStore = Depends(get_store),
):
    """Add, replace or clear tags on several files at once."""
    result = await store.bulk_update_tags(body.ids, body.mode, body.tags)
    return {
        "items": [FileItem.from_record(r) for r in result.updated],
        "missing": result.missing,
    }


@router.get("/{file_id}", response_model=FileItemResponse)
async def get_file_metadata(
    file_id: str,
    store: RecordStore = Depends(get_store),
):
    """Get file metadata by ID."""
    record = await _get_or_404(store, file_id)
    return {"item": FileItem.from_record(record)}


@router.get("/{file_id}/file")
async def download_file(
    file_id: str,
    store: RecordStore = Depends(get_store),
    storage: FileStorageService = Depends(get_storage),
):
    """Stream the stored model bytes."""
    record = await _get_or_404(store, file_id)
    if not storage.exists(record.storage_name):
        raise NotFoundError("File content missing")

    return FileResponse(
        path=storage.path_for(record.storage_name),
        filename=record.original_name,
        media_type=record.mime_type or "application/octet-stream",
    )


@router.patch("/{file_id}/tags", response_model=FileItemResponse)
async def update_tags(
    file_id: str,
    body: TagsUpdate,
    store: RecordStore = Depends(get_store),
):
    """Replace a file's tags. Accepts a comma string or a list."""
    record = await store.update_tags(file_id, body.tags)
    return {"item": FileItem.from_record(record)}


@router.post("/{file_id}/autotag", response_model=AutotagResponse)
async def autotag_file(
    file_id: str,
    strategy: str = Query("auto", description="auto, local or external"),
    store: RecordStore = Depends(get_store),
    engine: SuggestionEngine = Depends(get_suggestion_engine),
):
    """Suggest tags for a file and store them.

    Tags are only written once a suggestion has been obtained, so a failing
    suggestion service leaves the existing tags untouched.
    """
    record = await _get_or_404(store, file_id)
    suggested = await engine.suggest(record.original_name, record.extension, strategy=strategy)
    record = await store.update_tags(file_id, suggested)
    return {"item": FileItem.from_record(record), "suggested": suggested}


@router.delete("/{file_id}", response_model=DeleteResponse)
async def delete_file(
    file_id: str,
    store: RecordStore = Depends(get_store),
    storage: FileStorageService = Depends(get_storage),
):
    """Delete a file's content and its record.

    Content goes first; if that fails the row is still removed and the
    orphaned bytes are left for manual cleanup.
    """
    record = await _get_or_404(store, file_id)

    try:
        await storage.delete(record.storage_name)
    except OSError as e:
        logger.warning("Could not remove content %s for %s: %s", record.storage_name, file_id, e)

    await store.delete(file_id)
    logger.info("Deleted file %s (%s)", file_id, record.original_name)
    return {"deleted": True}
