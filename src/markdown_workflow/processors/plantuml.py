"""PlantUML processor - renders ```plantuml:name blocks."""

from pathlib import Path
from typing import Any

from ..config import PlantUMLConfig
from ..constants import DEFAULT_TOOL_TIMEOUT
from .base import ProcessorBlock
from .diagram import DiagramProcessor


class PlantUMLProcessor(DiagramProcessor):
    name = "plantuml"
    description = "Render PlantUML diagrams to images"
    tag = "plantuml"
    tool_name = "plantuml"
    comment_prefix = "'"
    intermediate_extension = ".puml"

    def __init__(self, config: PlantUMLConfig | None = None, timeout: int = DEFAULT_TOOL_TIMEOUT):
        self.config = config or PlantUMLConfig()
        super().__init__(output_format=self.config.output_format, timeout=timeout, command=self.config.command)

    def prepare_source(self, block: ProcessorBlock) -> str:
        """Wrap the block in @startuml/@enduml unless it already is."""
        code = block.content.strip()
        if not code.startswith("@start"):
            code = f"@startuml\n{code}\n@enduml"
        return code

    def build_command(self, tool: Path, source: Path, output: Path, options: dict[str, Any]) -> list[str]:
        # PlantUML names the output after the source file stem, which is the block name
        return [str(tool), f"-t{self.output_format}", "-charset", "UTF-8", "-o", str(output.parent), str(source)]
