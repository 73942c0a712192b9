"""Graphviz processor - renders ```graphviz:name blocks with dot."""

import logging
import re
from pathlib import Path
from typing import Any

from ..config import GraphvizConfig
from ..constants import DEFAULT_TOOL_TIMEOUT
from .base import ProcessorBlock
from .diagram import DiagramProcessor

logger = logging.getLogger(__name__)

LAYOUT_ENGINES = {"dot", "neato", "fdp", "sfdp", "twopi", "circo"}
THEMES = {"default", "dark", "light"}

THEME_STYLES = {
    "dark": ['bgcolor="#2d3748"', 'color="#e2e8f0"', 'fontcolor="#e2e8f0"'],
    "light": ['bgcolor="#f7fafc"', 'color="#2d3748"', 'fontcolor="#2d3748"'],
}

GRAPH_HEADER = re.compile(r"^\s*(?:strict\s+)?(?:di)?graph\b[^{]*\{")


class GraphvizProcessor(DiagramProcessor):
    """
    Render DOT diagrams.

    Block parameters: ``layout`` (dot, neato, fdp, sfdp, twopi, circo),
    ``theme`` (default, dark, light) and ``dpi`` for raster output.
    """

    name = "graphviz"
    description = "Render Graphviz DOT diagrams to images"
    tag = "graphviz"
    tool_name = "dot"
    intermediate_extension = ".dot"
    supported_formats = ("png", "svg", "pdf", "jpeg")

    def __init__(self, config: GraphvizConfig | None = None, timeout: int = DEFAULT_TOOL_TIMEOUT):
        self.config = config or GraphvizConfig()
        super().__init__(output_format=self.config.output_format, timeout=timeout, command=self.config.command)

    def render_options(self, block: ProcessorBlock) -> dict[str, Any]:
        params = block.metadata
        options: dict[str, Any] = {
            "layout": self.config.layout_engine,
            "theme": self.config.theme,
            "dpi": self.config.dpi,
        }

        layout = params.get("layout")
        if layout in LAYOUT_ENGINES:
            options["layout"] = layout
        elif layout:
            logger.warning(f"graphviz:{block.name}: unknown layout '{layout}', using {options['layout']}")

        theme = params.get("theme")
        if theme in THEMES:
            options["theme"] = theme
        elif theme:
            logger.warning(f"graphviz:{block.name}: unknown theme '{theme}', using {options['theme']}")

        if dpi := params.get("dpi"):
            try:
                options["dpi"] = int(dpi)
            except ValueError:
                logger.warning(f"graphviz:{block.name}: invalid dpi '{dpi}'")

        return options

    def intermediate_content(self, block: ProcessorBlock, options: dict[str, Any]) -> str:
        styled = apply_theme(block.content, options["theme"], self.config.background_color, self.config.font_family)
        render_settings = {k: v for k, v in options.items() if k != "theme"}
        settings = ", ".join(f"{key}={value}" for key, value in sorted(render_settings.items()))
        return f"{self.comment_prefix} options: {settings}\n{styled}"

    def build_command(self, tool: Path, source: Path, output: Path, options: dict[str, Any]) -> list[str]:
        args = [str(tool), f"-T{self.output_format}", f"-K{options['layout']}", f"-o{output}"]
        if self.output_format in ("png", "jpeg") and options.get("dpi"):
            args.append(f"-Gdpi={options['dpi']}")
        args.append(str(source))
        return args


def apply_theme(dot: str, theme: str, background: str | None = None, font: str | None = None) -> str:
    """
    Insert graph-level style attributes right after the opening brace.

    Sources without a recognizable ``graph``/``digraph`` header are
    returned unchanged.
    """
    styles = []
    if background:
        styles.append(f'bgcolor="{background}"')
    if font:
        styles.append(f'fontname="{font}"')
    styles.extend(THEME_STYLES.get(theme, []))

    match = GRAPH_HEADER.match(dot)
    if not styles or not match:
        return dot

    insert_at = match.end()
    style_lines = "\n".join(f"  {style};" for style in styles)
    return f"{dot[:insert_at]}\n{style_lines}{dot[insert_at:]}"
