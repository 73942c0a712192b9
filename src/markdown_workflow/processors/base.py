"""Base classes and result types shared by all content processors."""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..constants import ASSETS_DIR, INTERMEDIATE_DIR
from ..errors import ProcessorError

logger = logging.getLogger(__name__)


class ArtifactType(Enum):
    """Kind of file a processor produces."""

    ASSET = "asset"  # referenced from the rewritten document
    INTERMEDIATE = "intermediate"  # retained for debugging only


@dataclass(frozen=True)
class Artifact:
    name: str
    path: Path
    relative_path: str
    type: ArtifactType


@dataclass
class ProcessorBlock:
    """
    One fenced region of a document owned by a processor.

    ``start_index``/``end_index`` point into the document the block was
    detected in; ``content[start_index:end_index]`` is the whole fence.
    """

    name: str
    content: str
    start_index: int
    end_index: int
    metadata: dict[str, Any] = field(default_factory=dict)
    # Raw "{...}" header text, empty when the fence has no parameters
    attributes: str = ""


@dataclass
class ProcessingContext:
    """Where a pipeline run may write, owned by the caller for one run."""

    collection_path: Path
    assets_dir: Path
    intermediate_dir: Path
    output_format: str = "docx"

    @classmethod
    def for_collection(cls, collection_path: Path, output_format: str = "docx") -> ProcessingContext:
        return cls(
            collection_path=collection_path,
            assets_dir=collection_path / ASSETS_DIR,
            intermediate_dir=collection_path / INTERMEDIATE_DIR,
            output_format=output_format,
        )


@dataclass
class ProcessingResult:
    """Result of running one processor, or a whole pipeline."""

    success: bool
    processed_content: str
    artifacts: list[Artifact] = field(default_factory=list)
    blocks_processed: int = 0
    # Per-block diagnostics; the same text is embedded in the document as comments
    errors: list[str] = field(default_factory=list)

    @property
    def assets(self) -> list[Artifact]:
        return [a for a in self.artifacts if a.type == ArtifactType.ASSET]

    @property
    def intermediates(self) -> list[Artifact]:
        return [a for a in self.artifacts if a.type == ArtifactType.INTERMEDIATE]


class BaseProcessor(ABC):
    """
    A pluggable content transform.

    Subclasses detect their own blocks, generate artifacts for them and
    return the rewritten document. Failures on a single block are reported
    inline (see error_comment) and never abort the document.
    """

    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    intermediate_extension: str = ".txt"

    @abstractmethod
    def can_process(self, content: str) -> bool:
        """Cheap check whether the document may contain blocks for this processor."""

    @abstractmethod
    def detect_blocks(self, content: str) -> list[ProcessorBlock]:
        """All blocks this processor owns, in document order."""

    @abstractmethod
    def process(self, content: str, context: ProcessingContext) -> ProcessingResult:
        """Generate artifacts and return the rewritten document."""

    def processor_dir(self, context: ProcessingContext) -> Path:
        """This processor's directory under intermediate/."""
        return context.intermediate_dir / self.name

    def ensure_directories(self, context: ProcessingContext) -> None:
        """
        Create the assets and intermediate directories for a run.

        Raises:
            ProcessorError: If a directory cannot be created
        """
        for directory in (context.assets_dir, self.processor_dir(context)):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ProcessorError(f"{self.name}: cannot create {directory}: {e}") from e

    def intermediate_path(self, block_name: str, context: ProcessingContext) -> Path:
        return self.processor_dir(context) / f"{block_name}{self.intermediate_extension}"

    def relative_path(self, path: Path, context: ProcessingContext) -> str:
        """Path as referenced from a document written to the intermediate directory."""
        return Path(os.path.relpath(path, context.intermediate_dir)).as_posix()

    def artifact(self, path: Path, artifact_type: ArtifactType, context: ProcessingContext) -> Artifact:
        return Artifact(
            name=path.name,
            path=path,
            relative_path=self.relative_path(path, context),
            type=artifact_type,
        )

    def error_comment(self, block: ProcessorBlock, reason: str) -> str:
        # "--" would end the HTML comment early
        reason = " ".join(reason.split()).replace("--", "-")
        return f'<!-- {self.label} diagram "{block.name}" not rendered: {reason} -->'

    @property
    def label(self) -> str:
        return self.name.capitalize()

    def cleanup(self, context: ProcessingContext) -> None:
        """Remove this processor's intermediate files."""
        directory = self.processor_dir(context)
        if directory.exists():
            shutil.rmtree(directory)
            logger.info(f"Removed {directory}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
