"""
Interchange document I/O.

The interchange document is the JSON rendering of a Snapshot and the only
artifact handed from an export run to an import run.
"""

import json
import logging
import os
from typing import Any, Dict

from ..exceptions import NotFoundError, SnapshotFormatError
from .snapshot import Snapshot

logger = logging.getLogger(__name__)

REQUIRED_COLLECTIONS = ("units", "objects", "memberships")


def dumps_snapshot(snapshot: Snapshot) -> str:
    """Render a snapshot as an interchange document string."""
    return json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False)


def loads_snapshot(text: str) -> Snapshot:
    """
    Parse an interchange document string.

    Raises:
        SnapshotFormatError: If the text is not JSON or lacks a collection
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotFormatError(f"Interchange document is not valid JSON: {e}")

    _validate_document(document)

    try:
        return Snapshot.from_dict(document)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SnapshotFormatError(f"Malformed interchange document entry: {e}")


def save_snapshot(snapshot: Snapshot, file_path: str) -> None:
    """
    Write a snapshot to disk.

    The document is written to a temporary file first and moved into place,
    so an interrupted export never leaves a truncated document behind.
    """
    temp_path = f"{file_path}.tmp"
    try:
        with open(temp_path, "w", encoding="utf-8") as fh:
            fh.write(dumps_snapshot(snapshot))
        os.replace(temp_path, file_path)
    except Exception:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    logger.info(
        f"Snapshot written to {file_path}: {len(snapshot.units)} units, "
        f"{len(snapshot.objects)} objects, {len(snapshot.memberships)} memberships"
    )


def load_snapshot(file_path: str) -> Snapshot:
    """
    Read a snapshot from disk.

    Raises:
        NotFoundError: If the file does not exist
        SnapshotFormatError: If the document cannot be parsed
    """
    if not os.path.isfile(file_path):
        raise NotFoundError(f"Snapshot file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as fh:
        snapshot = loads_snapshot(fh.read())

    logger.info(
        f"Snapshot loaded from {file_path}: {len(snapshot.units)} units, "
        f"{len(snapshot.objects)} objects, {len(snapshot.memberships)} memberships"
    )
    return snapshot


def _validate_document(document: Any) -> None:
    if not isinstance(document, dict):
        raise SnapshotFormatError("Interchange document must be a JSON object")

    for key in REQUIRED_COLLECTIONS:
        if key not in document:
            raise SnapshotFormatError(f"Interchange document is missing '{key}'")
        if not isinstance(document[key], list):
            raise SnapshotFormatError(f"'{key}' must be a list")
