"""
Processors layer - Pluggable block-rewriting content transforms.

Each processor detects its own fenced blocks, generates artifacts for them
and returns the rewritten document. The registry chains them.
"""

from .base import (
    Artifact,
    ArtifactType,
    BaseProcessor,
    ProcessingContext,
    ProcessingResult,
    ProcessorBlock,
)
from .diagram import DiagramProcessor
from .emoji import EmojiProcessor
from .factory import create_default_registry
from .fences import detect_fenced_blocks, parse_params, rewrite_blocks
from .graphviz import GraphvizProcessor
from .mermaid import MermaidProcessor
from .plantuml import PlantUMLProcessor
from .regeneration import has_content_changed, needs_regeneration, write_if_changed
from .registry import PipelineCallbacks, ProcessorRegistry

__all__ = [
    "Artifact",
    "ArtifactType",
    "BaseProcessor",
    "DiagramProcessor",
    "ProcessingContext",
    "ProcessingResult",
    "ProcessorBlock",
    "EmojiProcessor",
    "GraphvizProcessor",
    "MermaidProcessor",
    "PlantUMLProcessor",
    "PipelineCallbacks",
    "ProcessorRegistry",
    "create_default_registry",
    "detect_fenced_blocks",
    "parse_params",
    "rewrite_blocks",
    "needs_regeneration",
    "has_content_changed",
    "write_if_changed",
]
