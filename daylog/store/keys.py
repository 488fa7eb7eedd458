from __future__ import annotations

from typing import Tuple

OWNERS_COLLECTION = "owners"


def owner_document(owner_id: str) -> str:
    return f"{OWNERS_COLLECTION}/{owner_id}"


def entry_collection(owner_id: str, collection: str) -> str:
    return f"{OWNERS_COLLECTION}/{owner_id}/{collection}"


def entry_document(owner_id: str, collection: str, date_key: str) -> str:
    return f"{entry_collection(owner_id, collection)}/{date_key}"


def split_path(path: str) -> Tuple[str, str]:
    """Split a document path into ``(collection, doc_id)``."""
    parts = [part for part in str(path).split("/") if part]
    if len(parts) < 2 or len(parts) % 2 != 0:
        raise ValueError(f"Not a document path: {path!r}")
    return "/".join(parts[:-1]), parts[-1]
