"""Import all models so SQLAlchemy metadata knows about them."""
from modelvault.models.base import Base
from modelvault.models.file_record import FileRecord

__all__ = ["Base", "FileRecord"]
