"""
Centralized constants for Markdown Workflow.

File names, directory names and defaults shared across modules
are defined here to avoid duplication.
"""

from pathlib import Path

# Metadata file stored in every collection directory
METADATA_FILE = "collection.yml"

# Write-ahead marker left in a collection while its status directory changes
TRANSITION_MARKER = ".transition.yml"

# Workflow definition file inside each workflow directory
WORKFLOW_FILE = "workflow.yml"

# Workflows shipped with the package, searched after project and shared ones
BUNDLED_WORKFLOWS_DIR = Path(__file__).resolve().parent / "workflows"

# Per-project configuration directory and file
PROJECT_DIR_NAME = ".markdown-workflow"
PROJECT_CONFIG_FILE = "config.yml"

# Collection sub-directories
ASSETS_DIR = "assets"
INTERMEDIATE_DIR = "intermediate"
FORMATTED_DIR = "formatted"

# Markdown file extensions considered by the format action
MARKDOWN_EXTENSIONS = {".md", ".markdown", ".MD"}

# Processor pipeline defaults
DEFAULT_PROCESSOR_ORDER = ["emoji", "mermaid", "plantuml", "graphviz"]
DEFAULT_TOOL_TIMEOUT = 30

# Output formats understood by the document converter
OUTPUT_FORMATS = {"docx", "html", "pdf"}

# External tools reported by `wf check`
EXTERNAL_TOOLS = ["dot", "plantuml", "mmdc", "pandoc"]
