"""Shared pytest fixtures for markdown-workflow tests."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from markdown_workflow.actions import ActionEnvironment
from markdown_workflow.config import UserConfig
from markdown_workflow.converters import ConversionResult
from markdown_workflow.processors import ProcessorRegistry
from markdown_workflow.status import StatusStateMachine
from markdown_workflow.store import CollectionStore
from markdown_workflow.workflow import WorkflowCatalog

FIXED_NOW = datetime(2025, 1, 21, 10, 0, 0, tzinfo=UTC)

JOB_WORKFLOW_YAML = """\
workflow:
  name: job
  description: Job application tracking
  version: "1.0.0"
  stages:
    - name: active
      description: Preparing the application
      color: blue
      next: [submitted, rejected, withdrawn]
    - name: submitted
      color: yellow
      next: [interview, rejected]
    - name: interview
      color: orange
      next: [offered, rejected]
    - name: offered
      color: green
      next: [accepted, declined]
    - name: accepted
      terminal: true
    - name: declined
      terminal: true
    - name: rejected
      color: red
      terminal: true
    - name: withdrawn
      terminal: true
  templates:
    - name: resume
      file: templates/resume.md
      output: "resume_{{ user.preferred_name }}.md"
    - name: cover_letter
      file: templates/cover_letter.md
      output: "cover_letter_{{ user.preferred_name }}.md"
    - name: notes
      file: templates/notes.md
      output: "{% if prefix %}{{ prefix }}_{% endif %}notes.md"
  statics:
    - name: resume_reference
      file: statics/resume_reference.docx
  actions:
    - name: create
      templates: [resume, cover_letter]
    - name: format
      formats: [docx, html, pdf]
      parameters:
        - name: format
          type: enum
          options: [docx, html, pdf, all]
          default: docx
    - name: add
      parameters:
        - name: template
          required: true
        - name: prefix
    - name: notes
      parameters:
        - name: note_type
          required: true
        - name: interviewer
    - name: scrape
      parameters:
        - name: url
          required: true
"""

RESUME_TEMPLATE = "# {{ user.name }}\n\nApplying to {{ company }} as {{ role }}.\n"
COVER_LETTER_TEMPLATE = "Dear {{ company }} team,\n\n{{ user.name }}\n"
NOTES_TEMPLATE = "# {{ prefix }} Notes\n\nCompany: {{ company }}\nInterviewer: {{ interviewer }}\nDate: {{ date }}\n"


def fixed_clock():
    return FIXED_NOW


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def workflows_dir(tmp_path):
    """Directory holding a complete job workflow with templates."""
    root = tmp_path / "workflows"
    job = root / "job"
    (job / "templates").mkdir(parents=True)
    (job / "statics").mkdir()

    (job / "workflow.yml").write_text(JOB_WORKFLOW_YAML)
    (job / "templates" / "resume.md").write_text(RESUME_TEMPLATE)
    (job / "templates" / "cover_letter.md").write_text(COVER_LETTER_TEMPLATE)
    (job / "templates" / "notes.md").write_text(NOTES_TEMPLATE)
    (job / "statics" / "resume_reference.docx").write_bytes(b"fake docx")

    return root


@pytest.fixture
def catalog(workflows_dir):
    return WorkflowCatalog([workflows_dir])


@pytest.fixture
def job_workflow(catalog):
    return catalog.get("job")


@pytest.fixture
def store(tmp_path):
    collections = tmp_path / "collections"
    collections.mkdir()
    return CollectionStore(collections)


@pytest.fixture
def machine(store, catalog):
    """State machine with a frozen clock."""
    return StatusStateMachine(store, catalog, clock=fixed_clock)


@pytest.fixture
def collection(store):
    """An active job collection created a day before FIXED_NOW."""
    return store.create(
        "job",
        "acme_engineer_20250120",
        "active",
        "2025-01-20T09:00:00.000Z",
        {"company": "Acme Corp", "role": "Engineer"},
    )


@pytest.fixture
def fake_converter():
    """Converter that records calls and writes a placeholder output file."""
    converter = MagicMock()

    def convert(input_file, output_file, output_format, reference_doc=None, resource_paths=None):
        output_file.write_text(f"converted {input_file.name}")
        return ConversionResult(success=True, output_file=output_file)

    converter.convert.side_effect = convert
    return converter


@pytest.fixture
def action_env(fake_converter):
    """Action environment with no processors, a fake converter and a frozen clock."""
    return ActionEnvironment(
        registry=ProcessorRegistry(),
        converter=fake_converter,
        user=UserConfig(name="Jane Doe", preferred_name="jane_doe"),
        clock=fixed_clock,
    )


@pytest.fixture
def project(tmp_path, workflows_dir):
    """A project root with .markdown-workflow/ config pointing at the fixture workflows."""
    root = tmp_path / "project"
    config_dir = root / ".markdown-workflow"
    config_dir.mkdir(parents=True)
    (config_dir / "config.yml").write_text(
        f"""
paths:
  workflows_dir: "{workflows_dir}"
user:
  name: "Jane Doe"
  preferred_name: "jane_doe"
testing:
  override_current_date: "2025-01-21T10:00:00Z"
"""
    )
    return root


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for tests that call external tools."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        yield mock_run


@pytest.fixture(name="_mock_shutil_which")
def mock_shutil_which():
    """Mock shutil.which to simulate available renderers."""

    def which_side_effect(tool):
        available = {"dot", "plantuml", "mmdc", "pandoc"}
        return f"/usr/bin/{tool}" if tool in available else None

    with (
        patch("shutil.which", side_effect=which_side_effect) as mock,
        patch("markdown_workflow.tools.USER_BIN_DIR", Path("/nonexistent/bin")),
    ):
        yield mock


@pytest.fixture(name="_no_tools")
def no_tools(tmp_path):
    """No external tool is installed anywhere."""
    with (
        patch("shutil.which", return_value=None) as mock,
        patch("markdown_workflow.tools.USER_BIN_DIR", tmp_path / "no-bin"),
    ):
        yield mock


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """Commands reconfigure logging; give every test the original root handlers back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
