"""Action dispatch - routing declared workflow actions to their handlers."""

import logging
from typing import Any

from ..errors import UnknownActionError
from ..store import Collection
from ..workflow import WorkflowDefinition
from .add import AddAction, NotesAction
from .base import ActionEnvironment, ActionHandler, ActionResult, resolve_parameters
from .format import FormatAction

logger = logging.getLogger(__name__)

HANDLERS: list[type[ActionHandler]] = [FormatAction, NotesAction, AddAction]


class ActionDispatcher:
    """
    Executes actions a workflow declares.

    An action runs only when the workflow declares it AND a handler
    implements it; anything else raises UnknownActionError.
    """

    def __init__(self, env: ActionEnvironment | None = None):
        self.env = env or ActionEnvironment()
        self.handlers: dict[str, ActionHandler] = {cls.name: cls(self.env) for cls in HANDLERS}

    @property
    def implemented(self) -> list[str]:
        return sorted(self.handlers)

    def available(self, workflow: WorkflowDefinition) -> list[str]:
        """Declared actions that can actually run."""
        return [a.name for a in workflow.actions if a.name in self.handlers]

    def execute(
        self,
        workflow: WorkflowDefinition,
        collection: Collection,
        action_name: str,
        params: dict[str, Any] | None = None,
    ) -> ActionResult:
        """
        Run an action against a collection.

        Raises:
            UnknownActionError: If the action is undeclared or unimplemented
            ParameterError: If parameters are missing or invalid (before any I/O)
        """
        spec = workflow.get_action(action_name)
        if spec is None:
            raise UnknownActionError(action_name, workflow.name, "not declared by the workflow")

        handler = self.handlers.get(action_name)
        if handler is None:
            raise UnknownActionError(action_name, workflow.name, "not implemented")

        resolved = resolve_parameters(spec, params or {})
        handler.validate(workflow, collection, resolved)

        logger.info(f"Running {action_name} on {workflow.name}/{collection.collection_id}")
        return handler.run(workflow, collection, resolved)
