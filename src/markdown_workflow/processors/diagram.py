"""
Diagram processors - shared flow for fenced diagram-as-code blocks.

For each block:
1. Write the derived source to intermediate/<processor>/<block>.<ext>
   (only when it changed, so its mtime stays put)
2. Skip rendering when assets/<block>.<format> is newer than that source
3. Otherwise run the renderer CLI with a timeout
4. Replace the fence with an image reference, or keep it behind an
   HTML comment explaining why it was not rendered
"""

import logging
from abc import abstractmethod
from pathlib import Path
from typing import Any

from ..constants import DEFAULT_TOOL_TIMEOUT
from ..errors import ExternalToolError
from ..tools import find_tool, run_tool
from .base import Artifact, ArtifactType, BaseProcessor, ProcessingContext, ProcessingResult, ProcessorBlock
from .fences import block_text, detect_fenced_blocks, marker_pattern, rewrite_blocks
from .regeneration import needs_regeneration, write_if_changed

logger = logging.getLogger(__name__)


class DiagramProcessor(BaseProcessor):
    """
    Base for processors that turn a fenced block into an image via a CLI.

    Subclasses set ``tag``, ``tool_name``, ``comment_prefix`` and implement
    build_command(); they may override prepare_source(), render_options()
    and image_reference().
    """

    tag: str = ""
    tool_name: str = ""
    # Line comment syntax of the diagram language
    comment_prefix: str = "//"
    supported_formats: tuple[str, ...] = ("png", "svg", "pdf")

    def __init__(self, output_format: str = "png", timeout: int = DEFAULT_TOOL_TIMEOUT, command: str | None = None):
        if output_format not in self.supported_formats:
            logger.warning(f"{self.name}: unsupported output format {output_format}, using png")
            output_format = "png"
        self.output_format = output_format
        self.timeout = timeout
        self.command = command
        self._marker = marker_pattern(self.tag)

    def can_process(self, content: str) -> bool:
        return self._marker.search(content) is not None

    def detect_blocks(self, content: str) -> list[ProcessorBlock]:
        return detect_fenced_blocks(content, self.tag)

    def find_renderer(self) -> Path | None:
        """Locate the renderer binary; None when it is not installed."""
        return find_tool(self.tool_name, self.command)

    def asset_path(self, block: ProcessorBlock, context: ProcessingContext) -> Path:
        return context.assets_dir / f"{block.name}.{self.output_format}"

    def prepare_source(self, block: ProcessorBlock) -> str:
        """Diagram source to hand to the renderer."""
        return block.content

    def render_options(self, block: ProcessorBlock) -> dict[str, Any]:
        """Options derived from block parameters that affect the rendered output."""
        return {}

    @abstractmethod
    def build_command(self, tool: Path, source: Path, output: Path, options: dict[str, Any]) -> list[str]:
        """Command line rendering ``source`` into ``output``."""

    def image_reference(self, block: ProcessorBlock, asset: Artifact) -> str:
        return f"![{block.name}]({asset.relative_path})"

    def intermediate_content(self, block: ProcessorBlock, options: dict[str, Any]) -> str:
        """
        Source as stored in intermediate/.

        Options are recorded in a leading comment so that changing them
        makes the intermediate newer than the rendered asset.
        """
        source = self.prepare_source(block)
        if options:
            settings = ", ".join(f"{key}={value}" for key, value in sorted(options.items()))
            source = f"{self.comment_prefix} options: {settings}\n{source}"
        return source

    def render_block(self, block: ProcessorBlock, context: ProcessingContext, tool: Path) -> list[Artifact]:
        """
        Produce the intermediate and asset files for one block.

        Raises:
            ExternalToolError: If the renderer fails or produces no output
        """
        options = self.render_options(block)
        source_path = self.intermediate_path(block.name, context)
        if write_if_changed(source_path, self.intermediate_content(block, options)):
            logger.debug(f"{self.name}: updated {source_path.name}")

        output_path = self.asset_path(block, context)
        if needs_regeneration(output_path, source_path):
            args = self.build_command(tool, source_path, output_path, options)
            result = run_tool(args, cwd=source_path.parent, timeout=self.timeout)
            if not result.success:
                raise ExternalToolError(f"{self.tool_name} failed: {result.message}")
            if not output_path.exists():
                raise ExternalToolError(f"{self.tool_name} produced no output file {output_path.name}")
            logger.info(f"{self.name}: rendered {block.name} -> {output_path.name}")
        else:
            logger.info(f"{self.name}: {output_path.name} is up to date")

        return [
            self.artifact(source_path, ArtifactType.INTERMEDIATE, context),
            self.artifact(output_path, ArtifactType.ASSET, context),
        ]

    def process(self, content: str, context: ProcessingContext) -> ProcessingResult:
        blocks = self.detect_blocks(content)
        if not blocks:
            return ProcessingResult(success=True, processed_content=content)

        self.ensure_directories(context)
        tool = self.find_renderer()
        if tool is None:
            logger.warning(f"{self.name}: {self.tool_name} not found, leaving {len(blocks)} block(s) unrendered")

        replacements = []
        artifacts: list[Artifact] = []
        errors = []
        seen: set[str] = set()

        for block in blocks:
            original = block_text(content, block)
            if block.name in seen:
                reason = "duplicate block name"
            elif tool is None:
                reason = f"{self.tool_name} CLI not available"
            else:
                reason = None
                try:
                    block_artifacts = self.render_block(block, context, tool)
                except ExternalToolError as e:
                    reason = str(e)
                else:
                    asset = next(a for a in block_artifacts if a.type == ArtifactType.ASSET)
                    replacements.append((block, self.image_reference(block, asset)))
                    artifacts.extend(block_artifacts)
            seen.add(block.name)

            if reason is not None:
                logger.warning(f"{self.name}: block {block.name} not rendered: {reason}")
                errors.append(f"{self.name}:{block.name}: {reason}")
                replacements.append((block, f"{self.error_comment(block, reason)}\n{original}"))

        return ProcessingResult(
            success=True,
            processed_content=rewrite_blocks(content, replacements),
            artifacts=artifacts,
            blocks_processed=len(blocks),
            errors=errors,
        )
