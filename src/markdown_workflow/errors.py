"""Exception hierarchy for workflow, collection and processing failures."""


class WorkflowError(Exception):
    """Base class for all errors raised by markdown-workflow."""


class NotFoundError(WorkflowError):
    """A workflow, collection, template, action or processor does not exist."""


class WorkflowNotFoundError(NotFoundError):
    def __init__(self, workflow: str, available: list[str] | None = None) -> None:
        self.workflow = workflow
        self.available = available or []
        message = f"Workflow not found: {workflow}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class CollectionNotFoundError(NotFoundError):
    def __init__(self, workflow: str, collection_id: str) -> None:
        self.workflow = workflow
        self.collection_id = collection_id
        super().__init__(f"Collection not found: {workflow}/{collection_id}")


class TemplateNotFoundError(NotFoundError):
    def __init__(self, template: str, available: list[str] | None = None) -> None:
        self.template = template
        self.available = available or []
        message = f"Template '{template}' not found"
        if self.available:
            message += f". Available templates: {', '.join(self.available)}"
        super().__init__(message)


class ProcessorNotFoundError(NotFoundError):
    def __init__(self, names: list[str]) -> None:
        self.names = names
        super().__init__(f"Unknown processor(s): {', '.join(names)}")


class ValidationError(WorkflowError):
    """Malformed input: metadata, workflow definitions or parameters."""


class MetadataError(ValidationError):
    """A collection.yml file exists but cannot be used."""

    def __init__(self, path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid collection metadata in {path}: {reason}")


class WorkflowDefinitionError(ValidationError):
    """A workflow.yml file violates the workflow structure."""


class ParameterError(ValidationError):
    """An action parameter is missing or has an invalid value."""


class UnknownStatusError(ValidationError):
    def __init__(self, status: str, workflow: str, declared: list[str]) -> None:
        self.status = status
        self.workflow = workflow
        self.declared = declared
        super().__init__(f"Unknown status '{status}' for workflow {workflow} (declared: {', '.join(declared)})")


class InvalidTransitionError(WorkflowError):
    """A status change that the workflow's stage graph does not allow."""

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid status transition: {from_status} -> {to_status}")


class UnknownActionError(WorkflowError):
    """An action that is not declared by the workflow or has no handler."""

    def __init__(self, action: str, workflow: str, reason: str) -> None:
        self.action = action
        self.workflow = workflow
        self.reason = reason
        super().__init__(f"Unknown action '{action}' for workflow {workflow}: {reason}")


class CollectionExistsError(WorkflowError):
    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Collection already exists: {path}")


class DuplicateProcessorError(WorkflowError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Processor already registered: {name}")


class ExternalToolError(WorkflowError):
    """An external CLI is missing, timed out or exited with an error."""


class ConversionError(ExternalToolError):
    """Document conversion (pandoc) failed for a collection file."""


class ProcessorError(WorkflowError):
    """A processor could not run at all (e.g. its directories cannot be created)."""


class ProjectExistsError(WorkflowError):
    def __init__(self, path) -> None:
        self.path = path
        super().__init__(f"Project already initialized: {path} (use --force to reinitialize)")
