"""Mermaid processor - renders ```mermaid:name blocks with mermaid-cli (mmdc)."""

import logging
from pathlib import Path
from typing import Any

from ..config import MermaidConfig
from ..constants import DEFAULT_TOOL_TIMEOUT
from .base import Artifact, ProcessorBlock
from .diagram import DiagramProcessor

logger = logging.getLogger(__name__)

HORIZONTAL_WIDTH = 1200
LAYERED_HEIGHT = 800


def _pixels(value: str) -> int | None:
    value = value.strip()
    if value.endswith("px"):
        value = value[:-2]
    try:
        return int(value)
    except ValueError:
        return None


class MermaidProcessor(DiagramProcessor):
    """
    Render Mermaid diagrams.

    Block attributes like ``{align=center, width=800px, layout=horizontal}``
    are copied after the image reference for the converter. ``width`` and
    ``height`` in pixels, or ``layout=horizontal``/``layout=layered``, also
    bound the rendered image size.
    """

    name = "mermaid"
    description = "Render Mermaid diagrams to images"
    tag = "mermaid"
    tool_name = "mmdc"
    comment_prefix = "%%"
    intermediate_extension = ".mmd"
    supported_formats = ("png", "svg", "pdf")

    def __init__(self, config: MermaidConfig | None = None, timeout: int = DEFAULT_TOOL_TIMEOUT):
        self.config = config or MermaidConfig()
        super().__init__(output_format=self.config.output_format, timeout=timeout, command=self.config.command)

    def render_options(self, block: ProcessorBlock) -> dict[str, Any]:
        params = block.metadata
        options: dict[str, Any] = {"theme": params.get("theme", self.config.theme)}

        width = _pixels(params["width"]) if "width" in params and "%" not in params["width"] else None
        height = _pixels(params["height"]) if "height" in params and "%" not in params["height"] else None
        layout = params.get("layout")

        if width or layout == "horizontal":
            options["width"] = width or HORIZONTAL_WIDTH
        elif height or layout == "layered":
            options["height"] = height or LAYERED_HEIGHT

        return options

    def build_command(self, tool: Path, source: Path, output: Path, options: dict[str, Any]) -> list[str]:
        args = [str(tool), "-i", str(source), "-o", str(output), "-t", options["theme"]]
        if "width" in options:
            args.extend(["-w", str(options["width"])])
        elif "height" in options:
            args.extend(["-H", str(options["height"])])
        if self.config.background_color:
            args.extend(["-b", self.config.background_color])
        return args

    def image_reference(self, block: ProcessorBlock, asset: Artifact) -> str:
        return f"![{block.name}]({asset.relative_path}){block.attributes}"
