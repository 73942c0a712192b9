"""
Collection storage - metadata files and artifact listing.

Collections live at ``<collections_dir>/<workflow>/<status>/<id>/`` with
their metadata in collection.yml. The status is part of the path, so looking
a collection up means searching every status directory of the workflow.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from .constants import METADATA_FILE, TRANSITION_MARKER
from .dates import to_iso
from .errors import CollectionExistsError, CollectionNotFoundError, MetadataError, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["collection_id", "workflow", "status", "date_created", "date_modified", "status_history"]


def check_extra_fields(extra: dict[str, Any] | None) -> None:
    """
    Reject workflow fields that would shadow core metadata.

    Raises:
        ValidationError: If a field name is one of REQUIRED_FIELDS
    """
    reserved = [key for key in (extra or {}) if key in REQUIRED_FIELDS]
    if reserved:
        raise ValidationError(f"Reserved metadata field(s) cannot be set: {', '.join(reserved)}")


def _as_text(value: Any) -> Any:
    """Undo YAML's implicit timestamp parsing so dates stay ISO strings."""
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


@dataclass
class StatusChange:
    """One entry of a collection's status history."""

    status: str
    date: str

    def to_dict(self) -> dict:
        return {"status": self.status, "date": self.date}

    @classmethod
    def from_dict(cls, data: dict) -> StatusChange:
        return cls(status=str(data["status"]), date=_as_text(data["date"]))


@dataclass
class CollectionMetadata:
    """Contents of collection.yml."""

    collection_id: str
    workflow: str
    status: str
    date_created: str
    date_modified: str
    status_history: list[StatusChange] = field(default_factory=list)
    # Workflow-specific fields (company, role, title, url, ...)
    extra: dict[str, Any] = field(default_factory=dict)

    def record_status(self, status: str, when: str) -> None:
        """Append a history entry and make it the current status."""
        self.status_history.append(StatusChange(status=status, date=when))
        self.status = status
        self.date_modified = when

    def to_dict(self) -> dict:
        data = {
            "collection_id": self.collection_id,
            "workflow": self.workflow,
            "status": self.status,
            "date_created": self.date_created,
            "date_modified": self.date_modified,
        }
        data.update({k: v for k, v in self.extra.items() if k not in REQUIRED_FIELDS})
        data["status_history"] = [entry.to_dict() for entry in self.status_history]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> CollectionMetadata:
        known = set(REQUIRED_FIELDS)
        return cls(
            collection_id=str(data["collection_id"]),
            workflow=str(data["workflow"]),
            status=str(data["status"]),
            date_created=_as_text(data["date_created"]),
            date_modified=_as_text(data["date_modified"]),
            status_history=[StatusChange.from_dict(entry) for entry in data["status_history"]],
            extra={k: _as_text(v) for k, v in data.items() if k not in known},
        )


def validate_metadata(data: Any) -> list[str]:
    """
    Check a parsed collection.yml mapping.

    Returns:
        List of problems (empty if valid)
    """
    if not isinstance(data, dict):
        return ["metadata is not a mapping"]

    errors = [f"missing required field '{key}'" for key in REQUIRED_FIELDS if key not in data]
    for key in ["collection_id", "workflow", "status"]:
        if key in data and not isinstance(data[key], str | int):
            errors.append(f"field '{key}' must be a string")

    history = data.get("status_history")
    if "status_history" in data:
        if not isinstance(history, list) or not history:
            errors.append("status_history must be a non-empty list")
        else:
            for index, entry in enumerate(history):
                if not isinstance(entry, dict) or "status" not in entry or "date" not in entry:
                    errors.append(f"status_history[{index}] needs 'status' and 'date'")

    return errors


def create_metadata(
    collection_id: str,
    workflow: str,
    status: str,
    now: str,
    extra: dict[str, Any] | None = None,
) -> CollectionMetadata:
    """Metadata for a brand-new collection with a single history entry."""
    check_extra_fields(extra)
    return CollectionMetadata(
        collection_id=collection_id,
        workflow=workflow,
        status=status,
        date_created=now,
        date_modified=now,
        status_history=[StatusChange(status=status, date=now)],
        extra=dict(extra or {}),
    )


@dataclass
class Collection:
    """A collection directory and its metadata."""

    metadata: CollectionMetadata
    path: Path

    @property
    def collection_id(self) -> str:
        return self.metadata.collection_id

    @property
    def status(self) -> str:
        return self.metadata.status

    @property
    def metadata_path(self) -> Path:
        return self.path / METADATA_FILE

    @property
    def artifacts(self) -> list[str]:
        """Non-hidden files in the collection directory, read fresh on every access."""
        return list_artifacts(self.path)

    @property
    def has_pending_transition(self) -> bool:
        return (self.path / TRANSITION_MARKER).exists()


def list_artifacts(path: Path) -> list[str]:
    """Non-hidden regular files directly inside ``path`` (metadata included)."""
    try:
        return sorted(f.name for f in path.iterdir() if f.is_file() and not f.name.startswith("."))
    except OSError:
        return []


def write_text_atomic(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then replace the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        temp_path.replace(path)
    finally:
        if temp_path.exists():
            temp_path.unlink()


def read_metadata(path: Path) -> CollectionMetadata:
    """
    Parse and validate a collection.yml file.

    Raises:
        MetadataError: If the file cannot be parsed or is missing fields
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise MetadataError(path, str(e)) from e

    errors = validate_metadata(data)
    if errors:
        raise MetadataError(path, "; ".join(errors))

    return CollectionMetadata.from_dict(data)


class CollectionStore:
    """
    Reads and writes collections under a collections directory.

    The store never moves directories; relocating a collection when its
    status changes belongs to StatusStateMachine.
    """

    def __init__(self, collections_dir: Path):
        self.collections_dir = Path(collections_dir)

    def workflow_dir(self, workflow: str) -> Path:
        return self.collections_dir / workflow

    def collection_dir(self, workflow: str, status: str, collection_id: str) -> Path:
        return self.collections_dir / workflow / status / collection_id

    def status_dirs(self, workflow: str) -> list[Path]:
        """Existing status directories of a workflow, sorted by name."""
        root = self.workflow_dir(workflow)
        if not root.is_dir():
            return []
        return sorted(d for d in root.iterdir() if d.is_dir() and not d.name.startswith("."))

    def locate(self, workflow: str, collection_id: str) -> Path | None:
        """Find the directory holding a collection, whatever its status."""
        candidates = [d / collection_id for d in self.status_dirs(workflow)]
        matches = [c for c in candidates if (c / METADATA_FILE).is_file()]
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                f"Collection {collection_id} found under several statuses: "
                f"{', '.join(m.parent.name for m in matches)}; using {matches[0].parent.name}"
            )
        return matches[0]

    def load(self, path: Path) -> Collection:
        """Load the collection stored in ``path``."""
        metadata = read_metadata(path / METADATA_FILE)
        collection = Collection(metadata=metadata, path=path)
        if collection.has_pending_transition:
            logger.warning(f"Collection {metadata.collection_id} has an interrupted status change; run `wf recover`")
        return collection

    def find(self, workflow: str, collection_id: str) -> Collection | None:
        """
        Look a collection up by id.

        Returns:
            The collection, or None if no status directory contains it

        Raises:
            MetadataError: If the collection exists but its metadata is corrupt
        """
        path = self.locate(workflow, collection_id)
        if path is None:
            return None
        return self.load(path)

    def get(self, workflow: str, collection_id: str) -> Collection:
        """Like find(), but raises CollectionNotFoundError when absent."""
        collection = self.find(workflow, collection_id)
        if collection is None:
            raise CollectionNotFoundError(workflow, collection_id)
        return collection

    def exists(self, workflow: str, collection_id: str) -> bool:
        return self.locate(workflow, collection_id) is not None

    def list(self, workflow: str, status: str | None = None) -> list[Collection]:
        """
        All readable collections of a workflow, oldest first.

        Collections with corrupt metadata are skipped with a warning.
        """
        collections = []
        for status_dir in self.status_dirs(workflow):
            if status and status_dir.name != status:
                continue
            for entry in sorted(status_dir.iterdir()):
                if not entry.is_dir() or not (entry / METADATA_FILE).is_file():
                    continue
                try:
                    collections.append(self.load(entry))
                except MetadataError as e:
                    logger.warning(f"Skipping collection {entry.name}: {e}")

        collections.sort(key=lambda c: (c.metadata.date_created, c.collection_id))
        return collections

    def persist(self, collection: Collection) -> None:
        """Rewrite collection.yml at the collection's current path."""
        content = "# Collection Metadata\n" + yaml.safe_dump(
            collection.metadata.to_dict(), sort_keys=False, allow_unicode=True, default_flow_style=False
        )
        write_text_atomic(collection.metadata_path, content)
        logger.debug(f"Saved metadata for {collection.collection_id} at {collection.path}")

    def update_fields(self, collection: Collection, fields: dict[str, Any], now: str) -> Collection:
        """
        Set workflow fields, stamp ``date_modified`` and persist.

        Raises:
            ValidationError: If a field name is a core metadata field
        """
        check_extra_fields(fields)
        collection.metadata.extra.update(fields)
        collection.metadata.date_modified = now
        self.persist(collection)
        logger.info(f"Updated {', '.join(fields)} on {collection.collection_id}")
        return collection

    def create(
        self,
        workflow: str,
        collection_id: str,
        status: str,
        now: str,
        extra: dict[str, Any] | None = None,
    ) -> Collection:
        """
        Create a new collection directory with fresh metadata.

        Raises:
            ValidationError: If ``extra`` names a core metadata field
            CollectionExistsError: If the id is already used under any status
        """
        check_extra_fields(extra)
        existing = self.locate(workflow, collection_id)
        if existing is not None:
            raise CollectionExistsError(existing)

        path = self.collection_dir(workflow, status, collection_id)
        if path.exists():
            raise CollectionExistsError(path)

        path.mkdir(parents=True)
        collection = Collection(metadata=create_metadata(collection_id, workflow, status, now, extra), path=path)
        self.persist(collection)
        logger.info(f"Created collection {workflow}/{status}/{collection_id}")
        return collection
