"""Project initialization - the .markdown-workflow/ directory and its config."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .config import _get_default_config_dir
from .constants import BUNDLED_WORKFLOWS_DIR, PROJECT_CONFIG_FILE, PROJECT_DIR_NAME
from .errors import ProjectExistsError, WorkflowNotFoundError
from .workflow import WorkflowCatalog

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_CONFIG = """\
# Markdown Workflow configuration
# Values under user: are available to templates as {{ user.<field> }}.

user:
  name: "Your Name"
  preferred_name: "your_name"
  email: "your.email@example.com"
  phone: ""
  address: ""
  city: ""
  state: ""
  zip: ""
  linkedin: ""
  github: ""
  website: ""

# paths:
#   collections_dir: "collections"   # defaults to the project root
#   workflows_dir: "~/my-workflows"   # shared workflows, searched after the project's own

processors:
  order: ["emoji", "mermaid", "plantuml", "graphviz"]
  enabled: ["emoji", "mermaid", "plantuml", "graphviz"]
  timeout: 30
#   graphviz:
#     command: "/usr/local/bin/dot"

converter:
  timeout: 120
#   command: "/usr/local/bin/pandoc"

logging:
  level: "WARNING"
  file_logging: false
"""

WORKFLOW_README = """\
# {title} workflow customization

Files here shadow the bundled {name} workflow:

- `workflow.yml` - replaces the workflow definition
- `templates/` - template files referenced by workflow.yml

Copy the bundled files you want to change into this directory and edit them.
"""


@dataclass
class InitResult:
    root: Path
    config_file: Path
    workflows: list[str] = field(default_factory=list)


def init_project(root: Path, workflows: list[str] | None = None, force: bool = False) -> InitResult:
    """
    Create ``.markdown-workflow/`` with a default config.yml under ``root``.

    Each requested workflow gets an empty customization directory under
    ``.markdown-workflow/workflows/``. An existing config.yml is only
    overwritten with ``force``.

    Raises:
        ProjectExistsError: If root already holds a project and force is False
        WorkflowNotFoundError: If a requested workflow is not available
    """
    project_dir = root / PROJECT_DIR_NAME
    if project_dir.is_dir() and not force:
        raise ProjectExistsError(project_dir)

    available = WorkflowCatalog([_get_default_config_dir() / "workflows", BUNDLED_WORKFLOWS_DIR]).available()
    selected = list(workflows) if workflows else available
    for name in selected:
        if name not in available:
            raise WorkflowNotFoundError(name, available)

    workflows_dir = project_dir / "workflows"
    workflows_dir.mkdir(parents=True, exist_ok=True)

    config_file = project_dir / PROJECT_CONFIG_FILE
    config_file.write_text(DEFAULT_PROJECT_CONFIG, encoding="utf-8")

    for name in selected:
        workflow_dir = workflows_dir / name
        workflow_dir.mkdir(exist_ok=True)
        (workflow_dir / "README.md").write_text(
            WORKFLOW_README.format(title=name.capitalize(), name=name), encoding="utf-8"
        )

    logger.info(f"Initialized project in {project_dir} with workflows: {', '.join(selected)}")
    return InitResult(root=root, config_file=config_file, workflows=selected)
