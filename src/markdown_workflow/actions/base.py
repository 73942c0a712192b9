"""Shared types for collection actions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import AppConfig, UserConfig
from ..converters import DocumentConverter, PandocConverter
from ..dates import Clock, format_date, make_clock
from ..errors import ParameterError
from ..processors import ProcessorRegistry, create_default_registry
from ..store import Collection
from ..templates import Renderer, render_template
from ..workflow import ActionSpec, WorkflowDefinition


@dataclass
class ActionResult:
    """Result of an action."""

    success: bool
    action: str
    created: list[Path] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    # Per-block diagnostics from the processor pipeline (format only)
    warnings: list[str] = field(default_factory=list)


@dataclass
class ActionEnvironment:
    """
    Collaborators the action handlers need.

    Everything has a working default so tests can replace just one piece.
    """

    renderer: Renderer = render_template
    registry: ProcessorRegistry = field(default_factory=create_default_registry)
    converter: DocumentConverter = field(default_factory=PandocConverter)
    user: UserConfig = field(default_factory=UserConfig)
    clock: Clock = field(default_factory=make_clock)

    @classmethod
    def from_config(cls, config: AppConfig) -> ActionEnvironment:
        return cls(
            registry=create_default_registry(config.processors),
            converter=PandocConverter(config.converter),
            user=config.user,
            clock=make_clock(config.testing),
        )

    def template_variables(self, collection: Collection, params: dict[str, Any]) -> dict[str, Any]:
        """Variables available to templates rendered for a collection."""
        metadata = collection.metadata
        variables: dict[str, Any] = dict(params)
        variables.update(metadata.extra)
        variables.update(
            {
                "collection_id": metadata.collection_id,
                "workflow": metadata.workflow,
                "status": metadata.status,
                "date": format_date(self.clock(), "YYYY-MM-DD"),
                "user": self.user.to_dict(),
            }
        )
        return variables


def _coerce(spec_param, value: Any) -> Any:
    if spec_param.type == "array" and isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if spec_param.type == "boolean" and isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return value


def resolve_parameters(action: ActionSpec, params: dict[str, Any]) -> dict[str, Any]:
    """
    Apply declared defaults and check required and enum parameters.

    Parameters the action does not declare pass through unchanged.

    Raises:
        ParameterError: If a required parameter is missing or an enum value is invalid
    """
    resolved = dict(params)
    for spec_param in action.parameters:
        value = resolved.get(spec_param.name)
        if value is None or value == "":
            if spec_param.default is not None:
                resolved[spec_param.name] = spec_param.default
                continue
            if spec_param.required:
                raise ParameterError(f"{action.name}: parameter '{spec_param.name}' is required")
            continue

        value = _coerce(spec_param, value)
        if spec_param.type == "enum" and spec_param.options and value not in spec_param.options:
            raise ParameterError(
                f"{action.name}: invalid {spec_param.name} '{value}' (options: {', '.join(spec_param.options)})"
            )
        resolved[spec_param.name] = value
    return resolved


class ActionHandler(ABC):
    """
    One implemented action.

    validate() must raise for every parameter problem it can detect without
    writing files; run() performs the I/O.
    """

    name: str = ""

    def __init__(self, env: ActionEnvironment):
        self.env = env

    @abstractmethod
    def validate(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> None:
        """Check parameters before any file is touched."""

    @abstractmethod
    def run(self, workflow: WorkflowDefinition, collection: Collection, params: dict[str, Any]) -> ActionResult:
        """Perform the action."""
