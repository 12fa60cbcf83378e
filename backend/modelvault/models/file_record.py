"""FileRecord model - model file metadata (bytes live in the uploads directory)."""
import uuid

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from modelvault.models.base import Base, CreatedAtMixin


def new_file_id() -> str:
    return str(uuid.uuid4())


class FileRecord(Base, CreatedAtMixin):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_file_id)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    storage_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    extension: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    # Comma-joined, normalized. Use services.tags.split_tags to read.
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="")
