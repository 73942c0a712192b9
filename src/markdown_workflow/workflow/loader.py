"""Loading workflow definitions from workflow.yml files."""

import logging
from pathlib import Path

import yaml

from ..constants import WORKFLOW_FILE
from ..errors import WorkflowDefinitionError, WorkflowNotFoundError
from .definition import WorkflowDefinition

logger = logging.getLogger(__name__)


def parse_workflow(yaml_cfg: dict, root: Path | None = None) -> WorkflowDefinition:
    """
    Build a validated WorkflowDefinition from a parsed workflow.yml.

    Args:
        yaml_cfg: Full YAML document (the definition lives under ``workflow:``)
        root: Directory holding workflow.yml

    Raises:
        WorkflowDefinitionError: If required keys are missing or invariants fail
    """
    if not isinstance(yaml_cfg, dict):
        raise WorkflowDefinitionError("workflow file must contain a mapping")

    data = yaml_cfg.get("workflow", yaml_cfg)
    if not isinstance(data, dict) or "name" not in data:
        raise WorkflowDefinitionError("workflow definition requires a 'name'")

    try:
        definition = WorkflowDefinition.from_dict(data, root=root)
    except (KeyError, TypeError) as e:
        raise WorkflowDefinitionError(f"Invalid workflow '{data.get('name')}': missing or malformed {e}") from e

    errors = definition.validate()
    if errors:
        raise WorkflowDefinitionError(f"Invalid workflow '{definition.name}': {'; '.join(errors)}")

    return definition


def load_workflow(path: Path) -> WorkflowDefinition:
    """Load and validate a workflow.yml file."""
    try:
        with open(path) as f:
            yaml_cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise WorkflowDefinitionError(f"Cannot parse {path}: {e}") from e

    return parse_workflow(yaml_cfg, root=path.parent)


class WorkflowCatalog:
    """
    Finds workflows by name across an ordered list of directories.

    Each directory holds ``<name>/workflow.yml``; the first directory that
    has a given workflow wins, so project-level workflows shadow shared ones.
    Loaded definitions are cached for the lifetime of the catalog.
    """

    def __init__(self, search_dirs: list[Path] | None = None):
        self.search_dirs = list(search_dirs or [])
        self._cache: dict[str, WorkflowDefinition] = {}

    @classmethod
    def from_definitions(cls, definitions: list[WorkflowDefinition]) -> "WorkflowCatalog":
        """Catalog over in-memory definitions (no directory lookup)."""
        catalog = cls()
        for definition in definitions:
            catalog._cache[definition.name] = definition
        return catalog

    def find_file(self, name: str) -> Path | None:
        for directory in self.search_dirs:
            candidate = directory / name / WORKFLOW_FILE
            if candidate.exists():
                return candidate
        return None

    def available(self) -> list[str]:
        """Names of all workflows visible to this catalog."""
        names = set(self._cache)
        for directory in self.search_dirs:
            if not directory.is_dir():
                continue
            for entry in directory.iterdir():
                if entry.is_dir() and (entry / WORKFLOW_FILE).exists():
                    names.add(entry.name)
        return sorted(names)

    def get(self, name: str) -> WorkflowDefinition:
        """
        Load a workflow by name.

        Raises:
            WorkflowNotFoundError: If no search directory has the workflow
            WorkflowDefinitionError: If the workflow file is invalid
        """
        if name in self._cache:
            return self._cache[name]

        path = self.find_file(name)
        if path is None:
            raise WorkflowNotFoundError(name, self.available())

        definition = load_workflow(path)
        if definition.name != name:
            logger.warning(f"Workflow directory '{name}' declares name '{definition.name}'")
        logger.debug(f"Loaded workflow {name} from {path}")
        self._cache[name] = definition
        return definition
