"""Tag normalization and the comma-joined storage format.

Tags arrive as a comma-separated string, a list, or nothing. They are stored
on the record as a single comma-joined string and handed back out as a list.
"""
from typing import Any, Iterable


def normalize_tags(value: Any) -> list[str]:
    """Trim and lowercase tag input, dropping empties.

    Comma-joined strings are split in either input shape. Order is preserved
    and duplicates are kept; ``serialize_tags`` drops them.
    Unsupported input shapes yield an empty list rather than an error.
    """
    if not value:
        return []
    if isinstance(value, str):
        pieces = value.split(",")
    elif isinstance(value, (list, tuple)):
        # Elements may themselves be comma-joined; stored tags never contain commas.
        pieces = [piece for item in value for piece in str(item).split(",")]
    else:
        return []

    tags = []
    for piece in pieces:
        tag = piece.strip().lower()
        if tag:
            tags.append(tag)
    return tags


def dedupe_tags(tags: Iterable[str]) -> list[str]:
    """Drop repeated tags, keeping the first occurrence."""
    seen = set()
    result = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def serialize_tags(tags: Iterable[str]) -> str:
    return ",".join(dedupe_tags(tags))


def split_tags(stored: str | None) -> list[str]:
    """Inverse of serialize_tags: the list a client sees."""
    if not stored:
        return []
    return [piece for piece in stored.split(",") if piece]


def merge_tags(existing: Iterable[str], extra: Iterable[str]) -> list[str]:
    """Append ``extra`` to ``existing`` without duplicates (bulk "add" mode)."""
    return dedupe_tags([*existing, *extra])
