"""Format action - process collection markdown and convert it with pandoc."""

import logging
from pathlib import Path
from typing import Any

from ..constants import FORMATTED_DIR, MARKDOWN_EXTENSIONS, OUTPUT_FORMATS
from ..errors import ConversionError, ParameterError
from ..processors import ProcessingContext
from ..store import Collection
from ..templates import normalize_template_name, strip_template_tags
from ..workflow import WorkflowDefinition
from .base import ActionHandler, ActionResult

logger = logging.getLogger(__name__)


def template_artifact_map(workflow: WorkflowDefinition, files: list[str]) -> dict[str, list[str]]:
    """
    Map template names to the collection files they produced.

    A file belongs to a template when its name starts with the template
    name (``resume_jane.md``) or ends with the template's normalized output
    stem (``recruiter_notes.md`` for ``notes``).
    """
    mapping: dict[str, list[str]] = {}
    for template in workflow.templates:
        stem = normalize_template_name(strip_template_tags(template.output).removesuffix(".md"))
        matches = []
        for name in files:
            file_stem = Path(name).stem
            if file_stem == template.name or file_stem.startswith(f"{template.name}_"):
                matches.append(name)
            elif stem and (file_stem == stem or file_stem.endswith(f"_{stem}")):
                matches.append(name)
        mapping[template.name] = matches
    return mapping


def detect_template_type(workflow: WorkflowDefinition, stem: str) -> str | None:
    """Template a file stem was produced from (longest matching name wins)."""
    candidates = [t.name for t in workflow.templates if stem == t.name or stem.startswith(f"{t.name}_")]
    return max(candidates, key=len) if candidates else None


class FormatAction(ActionHandler):
    """
    Convert collection markdown to docx/html/pdf.

    Each file goes through the processor pipeline first; the processed
    markdown is written to intermediate/ next to the generated images and
    handed to the converter from there.
    """

    name = "format"

    def _formats(self, workflow: WorkflowDefinition, params: dict[str, Any]) -> list[str]:
        action = workflow.get_action(self.name)
        allowed = (action.formats if action and action.formats else None) or sorted(OUTPUT_FORMATS)
        requested = str(params.get("format") or "docx")
        if requested == "all":
            return list(allowed)
        if requested not in allowed:
            raise ParameterError(f"format: unsupported format '{requested}' (options: {', '.join(allowed)}, all)")
        return [requested]

    def _select_files(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> list[str]:
        markdown = [name for name in collection.artifacts if Path(name).suffix in MARKDOWN_EXTENSIONS]

        requested = params.get("artifacts")
        if isinstance(requested, str):
            requested = [item.strip() for item in requested.split(",") if item.strip()]
        if not requested:
            return markdown

        mapping = template_artifact_map(workflow, markdown)
        selected: list[str] = []
        for artifact in requested:
            if artifact not in mapping:
                logger.warning(f"Unknown artifact '{artifact}'. Available artifacts: {', '.join(mapping)}")
                continue
            selected.extend(name for name in mapping[artifact] if name not in selected)

        if not selected:
            raise ParameterError(f"format: no files found for requested artifacts: {', '.join(requested)}")
        return selected

    def validate(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> None:
        self._formats(workflow, params)
        self._select_files(workflow, collection, params)

    def find_reference_doc(self, workflow: WorkflowDefinition, template_type: str | None) -> Path | None:
        """``<template>_reference`` static file, if the workflow ships one."""
        if not template_type:
            return None
        static = workflow.get_static(f"{template_type}_reference")
        if static is None:
            return None
        path = workflow.resolve(static.file)
        return path if path.is_file() else None

    def run(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> ActionResult:
        formats = self._formats(workflow, params)
        files = self._select_files(workflow, collection, params)

        result = ActionResult(success=True, action=self.name)
        output_dir = collection.path / FORMATTED_DIR
        output_dir.mkdir(parents=True, exist_ok=True)

        for output_format in formats:
            context = ProcessingContext.for_collection(collection.path, output_format)
            # assets/<block>.<ext> is shared by every file in the collection
            asset_owners: dict[Path, str] = {}
            for name in files:
                source = collection.path / name
                processed = self.env.registry.process_content(source.read_text(encoding="utf-8"), context)
                if not processed.success:
                    raise ConversionError(f"Processing failed for {name}: {'; '.join(processed.errors)}")
                result.warnings.extend(processed.errors)
                for asset in processed.assets:
                    owner = asset_owners.setdefault(asset.path, name)
                    if owner != name:
                        result.warnings.append(
                            f"{name} overwrote {asset.relative_path} from {owner}; give its diagrams unique names"
                        )

                context.intermediate_dir.mkdir(parents=True, exist_ok=True)
                processed_path = context.intermediate_dir / f"{source.stem}.md"
                processed_path.write_text(processed.processed_content, encoding="utf-8")

                stem = source.stem
                reference_doc = None
                if output_format == "docx":
                    reference_doc = self.find_reference_doc(workflow, detect_template_type(workflow, stem))

                output_path = output_dir / f"{stem}.{output_format}"
                conversion = self.env.converter.convert(
                    processed_path,
                    output_path,
                    output_format,
                    reference_doc=reference_doc,
                    resource_paths=[context.intermediate_dir, collection.path],
                )
                if not conversion.success:
                    raise ConversionError(f"Document conversion failed for {name}: {conversion.error}")

                result.created.append(output_path)
                suffix = " (with reference doc)" if reference_doc else ""
                result.messages.append(f"Created: {output_path.relative_to(collection.path)}{suffix}")

        return result
