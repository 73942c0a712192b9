"""Create action - start a new collection in the workflow's first stage."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..dates import to_iso
from ..store import Collection, CollectionStore
from ..workflow import WorkflowDefinition
from .add import find_template
from .base import ActionEnvironment

logger = logging.getLogger(__name__)


@dataclass
class CreateResult:
    collection: Collection
    created: list[Path] = field(default_factory=list)


def create_collection(
    store: CollectionStore,
    workflow: WorkflowDefinition,
    collection_id: str,
    fields: dict[str, Any] | None = None,
    env: ActionEnvironment | None = None,
) -> CreateResult:
    """
    Create a collection and render the templates its ``create`` action lists.

    Templates are resolved before the directory is created, so a missing
    template leaves nothing behind.

    Raises:
        CollectionExistsError: If the id is already used
        TemplateNotFoundError: If a listed template or its file is missing
    """
    env = env or ActionEnvironment()
    fields = dict(fields or {})

    action = workflow.get_action("create")
    templates = [find_template(workflow, name) for name in (action.templates if action else [])]

    now = to_iso(env.clock())
    collection = store.create(workflow.name, collection_id, workflow.initial_stage.name, now, fields)

    variables = env.template_variables(collection, fields)
    result = CreateResult(collection=collection)
    for template, template_path in templates:
        filename = env.renderer(template.output, variables).strip()
        output_path = collection.path / filename
        output_path.write_text(env.renderer(template_path.read_text(encoding="utf-8"), variables), encoding="utf-8")
        result.created.append(output_path)
        logger.info(f"Created {output_path}")

    return result
