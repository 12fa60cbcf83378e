"""Upload extension check and storage-name generation."""
import uuid
from dataclasses import dataclass
from pathlib import PurePath

from modelvault.errors import ValidationError

ALLOWED_EXTENSIONS = frozenset({".stl", ".3mf"})


@dataclass(frozen=True)
class UploadTicket:
    extension: str  # lowercase, no dot
    storage_name: str


def _suffix(filename: str) -> str:
    # PurePath keeps only the last path component, so "../x.stl" -> ".stl"
    return PurePath(filename).suffix.lower()


def accept(filename: str | None) -> bool:
    if not filename:
        return False
    return _suffix(filename) in ALLOWED_EXTENSIONS


def admit(filename: str | None) -> UploadTicket:
    """Validate an incoming filename and allocate the name its bytes go under.

    The storage name is a fresh uuid4 plus the lowercase extension; nothing
    else from the client's filename reaches the filesystem.
    """
    if not filename:
        raise ValidationError("File missing.")
    if not accept(filename):
        raise ValidationError("Only STL and 3MF files are allowed.")
    suffix = _suffix(filename)
    return UploadTicket(extension=suffix[1:], storage_name=f"{uuid.uuid4()}{suffix}")
