"""
Configuration management with YAML loading and environment variable support.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    BUNDLED_WORKFLOWS_DIR,
    DEFAULT_PROCESSOR_ORDER,
    DEFAULT_TOOL_TIMEOUT,
    PROJECT_CONFIG_FILE,
    PROJECT_DIR_NAME,
)


def _env_path(env_var: str, default: Path | None = None) -> Path | None:
    """Get path from environment variable or return default."""
    if value := os.environ.get(env_var):
        return Path(value)
    return default


@dataclass
class PathsConfig:
    """Paths configuration - all paths can be overridden via environment variables."""

    project_root: Path | None = field(default_factory=lambda: _env_path("WF_PROJECT_ROOT"))
    # Defaults to project_root when unset
    collections_dir: Path | None = field(default_factory=lambda: _env_path("WF_COLLECTIONS_DIR"))
    # Extra directory searched for <workflow>/workflow.yml
    workflows_dir: Path | None = field(default_factory=lambda: _env_path("WF_WORKFLOWS_DIR"))
    logs_dir: Path | None = None


@dataclass
class UserConfig:
    name: str = "Your Name"
    preferred_name: str = "your_name"
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    linkedin: str = ""
    github: str = ""
    website: str = ""

    def to_dict(self) -> dict:
        return dict(vars(self))


@dataclass
class GraphvizConfig:
    command: str | None = None
    output_format: str = "png"
    layout_engine: str = "dot"
    dpi: int = 96
    theme: str = "default"
    background_color: str | None = "white"
    font_family: str | None = "arial,sans-serif"


@dataclass
class PlantUMLConfig:
    command: str | None = None
    output_format: str = "png"


@dataclass
class MermaidConfig:
    command: str | None = None
    output_format: str = "png"
    theme: str = "default"
    background_color: str | None = None


@dataclass
class ProcessorsConfig:
    order: list[str] = field(default_factory=lambda: list(DEFAULT_PROCESSOR_ORDER))
    enabled: list[str] = field(default_factory=lambda: list(DEFAULT_PROCESSOR_ORDER))
    timeout: int = DEFAULT_TOOL_TIMEOUT  # seconds per renderer call
    graphviz: GraphvizConfig = field(default_factory=GraphvizConfig)
    plantuml: PlantUMLConfig = field(default_factory=PlantUMLConfig)
    mermaid: MermaidConfig = field(default_factory=MermaidConfig)


@dataclass
class ConverterConfig:
    command: str | None = None  # resolved to "pandoc" on PATH when unset
    timeout: int = 120


@dataclass
class TestingConfig:
    override_current_date: str | None = None


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file_logging: bool = False
    console_logging: bool = True


_SECTIONS = ["paths", "user", "processors", "converter", "testing", "logging"]
_PROCESSOR_SECTIONS = ["graphviz", "plantuml", "mermaid"]


def _apply(section: object, values: dict, paths: bool = False) -> None:
    """Copy known keys from a YAML mapping onto a config section."""
    for key, value in (values or {}).items():
        if hasattr(section, key):
            if paths and isinstance(value, str):
                value = Path(value).expanduser()
            setattr(section, key, value)


@dataclass
class AppConfig:
    paths: PathsConfig = field(default_factory=PathsConfig)
    user: UserConfig = field(default_factory=UserConfig)
    processors: ProcessorsConfig = field(default_factory=ProcessorsConfig)
    converter: ConverterConfig = field(default_factory=ConverterConfig)
    testing: TestingConfig = field(default_factory=TestingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> AppConfig:
        """Create config from dictionary."""
        config = cls()

        _apply(config.paths, data.get("paths", {}), paths=True)
        _apply(config.user, data.get("user", {}))
        _apply(config.converter, data.get("converter", {}))
        _apply(config.testing, data.get("testing", {}))
        _apply(config.logging, data.get("logging", {}))

        processors = data.get("processors", {}) or {}
        for key, value in processors.items():
            if key in _PROCESSOR_SECTIONS:
                _apply(getattr(config.processors, key), value)
            elif hasattr(config.processors, key):
                setattr(config.processors, key, value)

        return config

    @property
    def collections_dir(self) -> Path:
        """Directory holding <workflow>/<status>/<id> trees."""
        return self.paths.collections_dir or self.paths.project_root or Path.cwd()

    def workflow_search_dirs(self) -> list[Path]:
        """Directories searched for workflow definitions, highest priority first."""
        dirs = []
        if self.paths.project_root:
            dirs.append(self.paths.project_root / PROJECT_DIR_NAME / "workflows")
        if self.paths.workflows_dir:
            dirs.append(self.paths.workflows_dir)
        dirs.append(BUNDLED_WORKFLOWS_DIR)
        return dirs

    def _to_dict(self) -> dict:
        """Convert config to dictionary."""
        result = {}
        for attr in _SECTIONS:
            section = getattr(self, attr)
            values = {}
            for key, value in vars(section).items():
                if isinstance(value, Path):
                    value = str(value)
                elif key in _PROCESSOR_SECTIONS:
                    value = dict(vars(value))
                values[key] = value
            result[attr] = values
        return result


def _get_default_config_dir() -> Path:
    """Get default config directory."""
    if config_dir := os.environ.get("WF_CONFIG_DIR"):
        return Path(config_dir)

    if xdg_config := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_config) / "markdown-workflow"

    return Path.home() / ".config" / "markdown-workflow"


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` to the first directory containing .markdown-workflow/."""
    current = (start or Path.cwd()).resolve()
    for candidate in [current, *current.parents]:
        if (candidate / PROJECT_DIR_NAME).is_dir():
            return candidate
    return None


def load_config(config_path: Path | None = None, project_root: Path | None = None) -> AppConfig:
    """
    Load configuration for a project.

    Args:
        config_path: Path to config file (default: searches standard locations)
        project_root: Project directory (default: WF_PROJECT_ROOT or discovered from cwd)

    Returns:
        AppConfig with paths.project_root filled in when a project was found
    """
    if project_root is None:
        project_root = _env_path("WF_PROJECT_ROOT") or find_project_root()

    if config_path is None:
        search_paths = []
        if project_root:
            search_paths.append(project_root / PROJECT_DIR_NAME / PROJECT_CONFIG_FILE)
        search_paths.append(_get_default_config_dir() / PROJECT_CONFIG_FILE)
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    # Returns defaults if file doesn't exist
    config = AppConfig.from_yaml(config_path) if config_path else AppConfig()

    if project_root and config.paths.project_root is None:
        config.paths.project_root = project_root

    return config


def validate_paths(config: AppConfig) -> list[str]:
    """
    Validate that required paths are configured.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    if config.paths.project_root is None and config.paths.collections_dir is None:
        errors.append(
            f"No project found (run inside a directory containing {PROJECT_DIR_NAME}/ or set WF_PROJECT_ROOT)"
        )
    elif not config.collections_dir.exists():
        errors.append(f"collections_dir does not exist: {config.collections_dir}")

    return errors


def setup_logging(config: LoggingConfig, logs_dir: Path | None = None, verbose: bool = False) -> None:
    """Configure the root logger from the logging section."""
    level = logging.DEBUG if verbose else getattr(logging, str(config.level).upper(), logging.WARNING)
    handlers: list[logging.Handler] = []

    if config.console_logging or verbose:
        handlers.append(logging.StreamHandler())

    if config.file_logging and logs_dir:
        logs_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(logs_dir / "wf.log", encoding="utf-8"))

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
