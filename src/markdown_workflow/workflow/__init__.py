"""
Workflow layer - Stage graphs, actions and templates.

Workflow definitions are DATA loaded from workflow.yml.
They do NOT move collections - that's the state machine's job.
"""

from .definition import ActionParameter, ActionSpec, Stage, StaticSpec, TemplateSpec, WorkflowDefinition
from .loader import WorkflowCatalog, load_workflow, parse_workflow

__all__ = [
    "Stage",
    "ActionParameter",
    "ActionSpec",
    "TemplateSpec",
    "StaticSpec",
    "WorkflowDefinition",
    "WorkflowCatalog",
    "load_workflow",
    "parse_workflow",
]
