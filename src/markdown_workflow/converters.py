"""Document converters - markdown to docx/html/pdf via pandoc."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .config import ConverterConfig
from .errors import ExternalToolError
from .tools import find_tool, run_tool

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    success: bool
    output_file: Path
    error: str | None = None


class DocumentConverter(Protocol):
    """Protocol for markdown document converters."""

    def convert(
        self,
        input_file: Path,
        output_file: Path,
        output_format: str,
        reference_doc: Path | None = None,
        resource_paths: list[Path] | None = None,
    ) -> ConversionResult:
        """
        Convert a markdown file.

        Args:
            input_file: Markdown source
            output_file: Destination file
            output_format: "docx", "html" or "pdf"
            reference_doc: Styling reference (docx only)
            resource_paths: Directories searched for images

        Returns:
            ConversionResult (failures are returned, not raised)
        """
        ...


def build_pandoc_command(
    pandoc: Path,
    input_file: Path,
    output_file: Path,
    output_format: str,
    reference_doc: Path | None = None,
    resource_paths: list[Path] | None = None,
) -> list[str]:
    """Build the pandoc command line."""
    cmd = [str(pandoc), str(input_file), "-o", str(output_file), "--from", "markdown"]

    if output_format == "html":
        cmd.append("--standalone")
    if output_format == "docx" and reference_doc:
        cmd.append(f"--reference-doc={reference_doc}")
    if resource_paths:
        cmd.append(f"--resource-path={os.pathsep.join(str(p) for p in resource_paths)}")

    return cmd


class PandocConverter:
    """Converter backed by the pandoc CLI."""

    def __init__(self, config: ConverterConfig | None = None):
        self.config = config or ConverterConfig()

    def convert(
        self,
        input_file: Path,
        output_file: Path,
        output_format: str,
        reference_doc: Path | None = None,
        resource_paths: list[Path] | None = None,
    ) -> ConversionResult:
        pandoc = find_tool("pandoc", self.config.command)
        if pandoc is None:
            return ConversionResult(success=False, output_file=output_file, error="pandoc not found")

        output_file.parent.mkdir(parents=True, exist_ok=True)
        cmd = build_pandoc_command(pandoc, input_file, output_file, output_format, reference_doc, resource_paths)

        try:
            result = run_tool(cmd, cwd=input_file.parent, timeout=self.config.timeout)
        except ExternalToolError as e:
            return ConversionResult(success=False, output_file=output_file, error=str(e))

        if not result.success:
            return ConversionResult(success=False, output_file=output_file, error=result.message)

        logger.info(f"Converted {input_file.name} -> {output_file.name}")
        return ConversionResult(success=True, output_file=output_file)
