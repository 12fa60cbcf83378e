"""CRUD over file metadata rows.

The store is the only writer of ``FileRecord`` rows. After creation only the
``tags`` column ever changes; concurrent tag writes are last-write-wins.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from modelvault.errors import ConflictError, NotFoundError, ValidationError
from modelvault.models.file_record import FileRecord
from modelvault.services.tags import (
    merge_tags,
    normalize_tags,
    serialize_tags,
    split_tags,
)

logger = logging.getLogger(__name__)

BULK_MODES = ("add", "replace", "clear")


@dataclass
class BulkTagResult:
    updated: list[FileRecord] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


class RecordStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, record: FileRecord) -> FileRecord:
        """Insert a new row. An id collision aborts instead of overwriting."""
        if record.id and await self.session.get(FileRecord, record.id) is not None:
            raise ConflictError(f"File record {record.id} already exists")
        self.session.add(record)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError(f"File record {record.id} already exists") from e
        await self.session.refresh(record)
        return record

    async def list(
        self, extension: Optional[str] = None, tag: Optional[str] = None,
    ) -> list[FileRecord]:
        """All records, newest first. Optional extension and single-tag filters."""
        query = select(FileRecord).order_by(desc(FileRecord.created_at))
        if extension:
            query = query.where(FileRecord.extension == extension.strip().lstrip(".").lower())
        result = await self.session.execute(query)
        records = list(result.scalars().all())

        wanted = normalize_tags(tag)
        if wanted:
            records = [r for r in records if wanted[0] in split_tags(r.tags)]
        return records

    async def get(self, file_id: str) -> Optional[FileRecord]:
        return await self.session.get(FileRecord, file_id)

    async def update_tags(self, file_id: str, tags: Any) -> FileRecord:
        record = await self.get(file_id)
        if record is None:
            raise NotFoundError(f"File {file_id} not found")
        record.tags = serialize_tags(normalize_tags(tags))
        await self.session.commit()
        await self.session.refresh(record)
        logger.info("Updated tags on %s: %s", file_id, record.tags or "(none)")
        return record

    async def delete(self, file_id: str) -> bool:
        record = await self.get(file_id)
        if record is None:
            return False
        await self.session.delete(record)
        await self.session.commit()
        return True

    async def bulk_update_tags(
        self, file_ids: Iterable[str], mode: str, tags: Any = None,
    ) -> BulkTagResult:
        """Apply one tag mutation to many records in a single transaction.

        Modes: ``add`` merges into existing tags, ``replace`` overwrites,
        ``clear`` empties. Unknown ids are reported, not fatal.
        """
        if mode not in BULK_MODES:
            raise ValidationError(f"Unknown bulk tag mode '{mode}'. Expected one of: {', '.join(BULK_MODES)}")

        ids = list(dict.fromkeys(file_ids))
        incoming = normalize_tags(tags)

        result = await self.session.execute(select(FileRecord).where(FileRecord.id.in_(ids)))
        found = {r.id: r for r in result.scalars().all()}

        outcome = BulkTagResult()
        for file_id in ids:
            record = found.get(file_id)
            if record is None:
                outcome.missing.append(file_id)
                continue
            if mode == "add":
                record.tags = serialize_tags(merge_tags(split_tags(record.tags), incoming))
            elif mode == "replace":
                record.tags = serialize_tags(incoming)
            else:
                record.tags = ""
            outcome.updated.append(record)

        await self.session.commit()
        for record in outcome.updated:
            await self.session.refresh(record)

        logger.info(
            "Bulk %s tags: %d updated, %d missing",
            mode, len(outcome.updated), len(outcome.missing),
        )
        return outcome
