"""
Collection status state machine.

A collection's status lives in two places: the ``status`` field of its
metadata and the status segment of its directory path. StatusStateMachine is
the only component that changes either, and it keeps them in step.

Moving a collection is a directory rename followed by a metadata rewrite.
The two steps are not one atomic operation: a crash in between leaves the
directory under the new status with metadata still naming the old one.
Before renaming, a ``.transition.yml`` marker is written inside the collection
directory (it travels with the rename); ``recover()`` finds markers left by
interrupted transitions and either finishes or discards them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .constants import METADATA_FILE, TRANSITION_MARKER
from .dates import Clock, current_datetime, latest, parse_iso, to_iso
from .errors import CollectionExistsError, InvalidTransitionError, MetadataError, UnknownStatusError
from .store import Collection, CollectionStore, read_metadata, write_text_atomic
from .workflow import WorkflowCatalog, WorkflowDefinition

logger = logging.getLogger(__name__)


@dataclass
class TransitionMarker:
    """Write-ahead record of an in-flight status change."""

    from_status: str
    to_status: str
    date: str

    def to_dict(self) -> dict:
        return {"from": self.from_status, "to": self.to_status, "date": self.date}

    @classmethod
    def from_dict(cls, data: dict) -> TransitionMarker:
        if not isinstance(data, dict):
            raise TypeError("marker is not a mapping")
        return cls(from_status=str(data["from"]), to_status=str(data["to"]), date=to_iso(parse_iso(data["date"])))

    @classmethod
    def read(cls, path: Path) -> TransitionMarker:
        """
        Load a marker file.

        Raises:
            ValueError: If the file is not valid YAML or lacks from/to/date
        """
        try:
            with open(path, encoding="utf-8") as f:
                return cls.from_dict(yaml.safe_load(f))
        except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            raise ValueError(f"unreadable transition marker: {e}") from e


@dataclass
class RecoveryResult:
    """Outcome of resolving one interrupted transition."""

    collection_id: str
    from_status: str
    to_status: str
    action: str  # "completed", "rolled_back" or "failed"
    error: str | None = None


class StatusStateMachine:
    """
    Validates and applies status transitions.

    A transition from stage ``s`` to ``t`` is allowed iff ``t`` is a declared
    stage and either ``t == s`` (refreshes date_modified) or ``t`` is listed
    in ``s.next``. Terminal flags are informational only.
    """

    def __init__(self, store: CollectionStore, catalog: WorkflowCatalog, clock: Clock | None = None):
        self.store = store
        self.catalog = catalog
        self.clock = clock or current_datetime

    @staticmethod
    def can_transition(workflow: WorkflowDefinition, from_status: str, to_status: str) -> bool:
        """Check a transition against the stage graph without touching disk."""
        if workflow.get_stage(to_status) is None:
            return False
        if from_status == to_status:
            return True
        current = workflow.get_stage(from_status)
        return current is not None and to_status in current.transitions

    @staticmethod
    def available_transitions(workflow: WorkflowDefinition, status: str) -> list[str]:
        stage = workflow.get_stage(status)
        return stage.transitions if stage else []

    def transition(self, workflow_name: str, collection_id: str, new_status: str) -> Collection:
        """
        Move a collection to ``new_status``.

        Args:
            workflow_name: Workflow the collection belongs to
            collection_id: Collection identifier
            new_status: Target stage name

        Returns:
            The collection with updated metadata and path

        Raises:
            WorkflowNotFoundError: If the workflow does not exist
            UnknownStatusError: If new_status is not a declared stage
            CollectionNotFoundError: If the collection does not exist
            InvalidTransitionError: If the stage graph forbids the move
            CollectionExistsError: If the target directory is already taken
        """
        workflow = self.catalog.get(workflow_name)
        if workflow.get_stage(new_status) is None:
            raise UnknownStatusError(new_status, workflow_name, workflow.stage_names)

        collection = self.store.get(workflow_name, collection_id)
        current_status = collection.metadata.status

        if not self.can_transition(workflow, current_status, new_status):
            raise InvalidTransitionError(current_status, new_status)

        now = latest(collection.metadata.date_modified, self.clock())

        if new_status != current_status:
            target = self.store.collection_dir(workflow_name, new_status, collection_id)
            if target.exists():
                raise CollectionExistsError(target)

            marker = TransitionMarker(from_status=current_status, to_status=new_status, date=now)
            self._write_marker(collection, marker)

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                os.rename(collection.path, target)
            except OSError:
                self._clear_marker(collection)
                raise
            logger.info(f"Moved {collection_id}: {collection.path} -> {target}")
            collection.path = target

        collection.metadata.record_status(new_status, now)
        self.store.persist(collection)
        self._clear_marker(collection)

        logger.info(f"Collection {workflow_name}/{collection_id}: {current_status} -> {new_status}")
        return collection

    def marker_dirs(self, workflow_name: str) -> list[Path]:
        """Collection directories holding a transition marker file."""
        return [
            entry
            for status_dir in self.store.status_dirs(workflow_name)
            for entry in sorted(status_dir.iterdir())
            if (entry / TRANSITION_MARKER).is_file()
        ]

    def pending(self, workflow_name: str) -> list[tuple[Path, TransitionMarker]]:
        """Collection directories holding a readable transition marker."""
        found = []
        for path in self.marker_dirs(workflow_name):
            try:
                found.append((path, TransitionMarker.read(path / TRANSITION_MARKER)))
            except ValueError as e:
                logger.warning(f"Skipping {path.name}: {e}")
        return found

    def recover(self, workflow_name: str) -> list[RecoveryResult]:
        """
        Resolve transitions interrupted between rename and metadata write.

        A collection whose directory already sits under the marker's target
        status gets its history entry and metadata rewrite; one still under
        the source status never moved, so its marker is simply dropped.
        A marker that cannot be read is reported as failed and left in place.
        """
        results = []
        for path in self.marker_dirs(workflow_name):
            dir_status = path.parent.name
            try:
                marker = TransitionMarker.read(path / TRANSITION_MARKER)
            except ValueError as e:
                logger.warning(f"Cannot recover {path.name}: {e}")
                results.append(RecoveryResult(path.name, "", "", "failed", str(e)))
                continue

            try:
                collection = Collection(metadata=read_metadata(path / METADATA_FILE), path=path)
            except MetadataError as e:
                logger.warning(f"Cannot recover {path.name}: {e}")
                results.append(RecoveryResult(path.name, marker.from_status, marker.to_status, "failed", str(e)))
                continue

            collection_id = collection.collection_id
            if dir_status == marker.to_status:
                if collection.metadata.status != marker.to_status:
                    when = latest(collection.metadata.date_modified, parse_iso(marker.date))
                    collection.metadata.record_status(marker.to_status, when)
                    self.store.persist(collection)
                self._clear_marker(collection)
                logger.info(f"Completed interrupted transition of {collection_id} to {marker.to_status}")
                results.append(RecoveryResult(collection_id, marker.from_status, marker.to_status, "completed"))
            elif dir_status == marker.from_status:
                self._clear_marker(collection)
                logger.info(f"Rolled back interrupted transition of {collection_id} to {marker.to_status}")
                results.append(RecoveryResult(collection_id, marker.from_status, marker.to_status, "rolled_back"))
            else:
                results.append(
                    RecoveryResult(
                        collection_id,
                        marker.from_status,
                        marker.to_status,
                        "failed",
                        f"directory is under unexpected status '{dir_status}'",
                    )
                )
        return results

    def _write_marker(self, collection: Collection, marker: TransitionMarker) -> None:
        write_text_atomic(collection.path / TRANSITION_MARKER, yaml.safe_dump(marker.to_dict(), sort_keys=False))

    def _clear_marker(self, collection: Collection) -> None:
        marker_path = collection.path / TRANSITION_MARKER
        if marker_path.exists():
            marker_path.unlink()

