"""Update action - change a collection's workflow fields in place."""

import logging
from typing import Any

from ..dates import latest
from ..errors import ParameterError
from ..store import Collection, CollectionStore
from ..workflow import WorkflowDefinition
from .base import ActionEnvironment

logger = logging.getLogger(__name__)


def update_collection(
    store: CollectionStore,
    workflow: WorkflowDefinition,
    collection_id: str,
    fields: dict[str, Any],
    env: ActionEnvironment | None = None,
) -> Collection:
    """
    Set fields on an existing collection without moving it.

    ``date_modified`` never goes backwards, even when the clock does.

    Raises:
        ParameterError: If no fields are given
        CollectionNotFoundError: If the collection does not exist
        ValidationError: If a field would overwrite core metadata
    """
    if not fields:
        raise ParameterError("update: at least one field is required")

    env = env or ActionEnvironment()
    collection = store.get(workflow.name, collection_id)
    now = latest(collection.metadata.date_modified, env.clock())
    return store.update_fields(collection, dict(fields), now)
