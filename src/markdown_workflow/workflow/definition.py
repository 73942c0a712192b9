"""Workflow definitions - stages, actions, templates and statics."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class Stage:
    """
    A named node in a workflow's status graph.

    ``next`` lists the stages a collection may move to. ``None`` means the
    stage declares no transitions, which behaves exactly like an empty list.
    """

    name: str
    description: str = ""
    next: list[str] | None = None
    terminal: bool = False
    color: str | None = None

    @property
    def transitions(self) -> list[str]:
        return list(self.next or [])

    @classmethod
    def from_dict(cls, data: dict) -> Stage:
        next_stages = data.get("next")
        return cls(
            name=str(data["name"]),
            description=data.get("description", ""),
            next=[str(s) for s in next_stages] if next_stages is not None else None,
            terminal=bool(data.get("terminal", False)),
            color=data.get("color"),
        )


@dataclass
class ActionParameter:
    name: str
    type: str = "string"  # "string", "enum", "array", "boolean"
    required: bool = False
    default: Any = None
    options: list[str] | None = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> ActionParameter:
        return cls(
            name=str(data["name"]),
            type=data.get("type", "string"),
            required=bool(data.get("required", False)),
            default=data.get("default"),
            options=data.get("options"),
            description=data.get("description", ""),
        )


@dataclass
class ActionSpec:
    """An action a workflow declares; whether it runs depends on the dispatcher."""

    name: str
    description: str = ""
    usage: str = ""
    parameters: list[ActionParameter] = field(default_factory=list)
    # Templates rendered by the action (used by "create")
    templates: list[str] = field(default_factory=list)
    # Output formats accepted by the action (used by "format")
    formats: list[str] = field(default_factory=list)
    converter: str | None = None

    def get_parameter(self, name: str) -> ActionParameter | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    @classmethod
    def from_dict(cls, data: dict) -> ActionSpec:
        return cls(
            name=str(data["name"]),
            description=data.get("description", ""),
            usage=data.get("usage", ""),
            parameters=[ActionParameter.from_dict(p) for p in data.get("parameters", []) or []],
            templates=list(data.get("templates", []) or []),
            formats=list(data.get("formats", []) or []),
            converter=data.get("converter"),
        )


@dataclass
class TemplateSpec:
    name: str
    file: str
    output: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> TemplateSpec:
        return cls(
            name=str(data["name"]),
            file=str(data["file"]),
            output=str(data.get("output", f"{data['name']}.md")),
            description=data.get("description", ""),
        )


@dataclass
class StaticSpec:
    """A file copied or referenced verbatim (e.g. a DOCX reference document)."""

    name: str
    file: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> StaticSpec:
        return cls(name=str(data["name"]), file=str(data["file"]), description=data.get("description", ""))


@dataclass
class WorkflowDefinition:
    """
    A complete workflow: its stage graph plus the actions and templates
    available to collections of this workflow.

    ``root`` is the directory holding workflow.yml; template and static
    files resolve relative to it.
    """

    name: str
    description: str = ""
    version: str = "1.0.0"
    stages: list[Stage] = field(default_factory=list)
    actions: list[ActionSpec] = field(default_factory=list)
    templates: list[TemplateSpec] = field(default_factory=list)
    statics: list[StaticSpec] = field(default_factory=list)
    root: Path | None = None

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    @property
    def initial_stage(self) -> Stage:
        """Collections are created in the first declared stage."""
        return self.stages[0]

    def get_stage(self, name: str) -> Stage | None:
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def get_action(self, name: str) -> ActionSpec | None:
        for action in self.actions:
            if action.name == name:
                return action
        return None

    def get_template(self, name: str) -> TemplateSpec | None:
        for template in self.templates:
            if template.name == name:
                return template
        return None

    def get_static(self, name: str) -> StaticSpec | None:
        for static in self.statics:
            if static.name == name:
                return static
        return None

    def resolve(self, relative: str) -> Path:
        """Resolve a template/static file path against the workflow directory."""
        base = self.root or Path.cwd()
        return base / relative

    def validate(self) -> list[str]:
        """
        Check structural invariants.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.stages:
            errors.append("workflow declares no stages")

        names = self.stage_names
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            errors.append(f"duplicate stage names: {', '.join(duplicates)}")

        for stage in self.stages:
            for target in stage.transitions:
                if target not in names:
                    errors.append(f"stage '{stage.name}' lists unknown next stage '{target}'")
            if stage.terminal and stage.transitions:
                errors.append(f"terminal stage '{stage.name}' declares outgoing transitions")

        action_names = [a.name for a in self.actions]
        duplicates = sorted({n for n in action_names if action_names.count(n) > 1})
        if duplicates:
            errors.append(f"duplicate action names: {', '.join(duplicates)}")

        template_names = [t.name for t in self.templates]
        duplicates = sorted({n for n in template_names if template_names.count(n) > 1})
        if duplicates:
            errors.append(f"duplicate template names: {', '.join(duplicates)}")

        for action in self.actions:
            for template in action.templates:
                if template not in template_names:
                    errors.append(f"action '{action.name}' references unknown template '{template}'")

        return errors

    @classmethod
    def from_dict(cls, data: dict, root: Path | None = None) -> WorkflowDefinition:
        """Build from the mapping under the top-level ``workflow:`` key."""
        return cls(
            name=str(data["name"]),
            description=data.get("description", ""),
            version=str(data.get("version", "1.0.0")),
            stages=[Stage.from_dict(s) for s in data.get("stages", []) or []],
            actions=[ActionSpec.from_dict(a) for a in data.get("actions", []) or []],
            templates=[TemplateSpec.from_dict(t) for t in data.get("templates", []) or []],
            statics=[StaticSpec.from_dict(s) for s in data.get("statics", []) or []],
            root=root,
        )
