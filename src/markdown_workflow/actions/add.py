"""Add actions - create collection files from workflow templates."""

import logging
from pathlib import Path
from typing import Any

from ..errors import ParameterError, TemplateNotFoundError, ValidationError
from ..store import Collection
from ..templates import normalize_template_name, sanitize_for_filename, strip_template_tags
from ..workflow import TemplateSpec, WorkflowDefinition
from .base import ActionHandler, ActionResult

logger = logging.getLogger(__name__)


def find_template(workflow: WorkflowDefinition, name: str) -> tuple[TemplateSpec, Path]:
    """
    Look up a template and its file.

    Raises:
        TemplateNotFoundError: If the workflow lacks the template or its file
    """
    template = workflow.get_template(name)
    if template is None:
        raise TemplateNotFoundError(name, [t.name for t in workflow.templates])

    path = workflow.resolve(template.file)
    if not path.is_file():
        raise TemplateNotFoundError(f"{name} ({path})")
    return template, path


def output_filename(template: TemplateSpec, prefix: str | None, render, variables: dict[str, Any]) -> str:
    """
    Name of the file an add produces.

    With a prefix: ``<prefix>_<template output without variables>.md``,
    e.g. prefix "Recruiter Screen" and output "notes.md" give
    ``recruiter_screen_notes.md``. Without: the rendered output pattern.
    """
    if prefix and prefix.strip():
        base = strip_template_tags(template.output).removesuffix(".md")
        base = normalize_template_name(base) or normalize_template_name(template.name)
        return f"{sanitize_for_filename(prefix)}_{base}.md"
    return render(template.output, variables).strip()


class AddAction(ActionHandler):
    """Render any workflow template into a new file in the collection."""

    name = "add"

    def _plan(
        self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]
    ) -> tuple[Path, Path, dict[str, Any]]:
        template_name = params.get("template")
        if not template_name or not isinstance(template_name, str):
            raise ParameterError("add: parameter 'template' is required")

        template, template_path = find_template(workflow, template_name)

        prefix = params.get("prefix")
        if prefix is not None and not isinstance(prefix, str):
            raise ParameterError("add: parameter 'prefix' must be a string")

        variables = self.env.template_variables(collection, params)
        variables["prefix"] = prefix[:1].upper() + prefix[1:] if prefix else ""
        variables.setdefault("interviewer", "")

        filename = output_filename(template, prefix, self.env.renderer, variables)
        if not filename or "/" in filename or filename.startswith("."):
            raise ValidationError(f"add: template '{template.name}' produced an invalid filename '{filename}'")

        output_path = collection.path / filename
        if output_path.exists():
            raise ValidationError(
                f"File already exists: {filename}. Use a different prefix or remove the existing file."
            )

        return template_path, output_path, variables

    def validate(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> None:
        self._plan(workflow, collection, params)

    def run(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> ActionResult:
        template_path, output_path, variables = self._plan(workflow, collection, params)

        content = self.env.renderer(template_path.read_text(encoding="utf-8"), variables)
        output_path.write_text(content, encoding="utf-8")
        logger.info(f"Created {output_path}")

        return ActionResult(
            success=True,
            action=self.name,
            created=[output_path],
            messages=[f"Created: {output_path.name}"],
        )


class NotesAction(AddAction):
    """
    Create a notes file for an interview, meeting or call.

    ``note_type`` becomes the filename prefix, so a "recruiter" note lands
    in ``recruiter_notes.md``.
    """

    name = "notes"
    template_name = "notes"

    def _notes_params(self, params: dict[str, Any]) -> dict[str, Any]:
        note_type = params.get("note_type")
        if not isinstance(note_type, str) or not note_type.strip():
            raise ParameterError("notes: parameter 'note_type' is required")
        return {**params, "template": self.template_name, "prefix": note_type.strip()}

    def validate(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> None:
        super().validate(workflow, collection, self._notes_params(params))

    def run(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> ActionResult:
        result = super().run(workflow, collection, self._notes_params(params))
        result.action = self.name
        return result
