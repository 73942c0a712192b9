"""Building the processor registry from configuration."""

import logging

from ..config import ProcessorsConfig
from ..constants import DEFAULT_PROCESSOR_ORDER
from .base import BaseProcessor
from .emoji import EmojiProcessor
from .graphviz import GraphvizProcessor
from .mermaid import MermaidProcessor
from .plantuml import PlantUMLProcessor
from .registry import ProcessorRegistry

logger = logging.getLogger(__name__)


def build_processor(name: str, config: ProcessorsConfig) -> BaseProcessor | None:
    """Instantiate a built-in processor by name (None if unknown)."""
    if name == "emoji":
        return EmojiProcessor()
    if name == "mermaid":
        return MermaidProcessor(config.mermaid, timeout=config.timeout)
    if name == "plantuml":
        return PlantUMLProcessor(config.plantuml, timeout=config.timeout)
    if name == "graphviz":
        return GraphvizProcessor(config.graphviz, timeout=config.timeout)
    return None


def create_default_registry(config: ProcessorsConfig | None = None) -> ProcessorRegistry:
    """
    Registry with the enabled built-in processors in the configured order.

    Default order: emoji, mermaid, plantuml, graphviz. Emoji runs first so
    shortcodes are resolved before diagram fences are replaced.
    """
    config = config or ProcessorsConfig()
    enabled = set(config.enabled)
    order = [name for name in (config.order or DEFAULT_PROCESSOR_ORDER) if name in enabled]
    # Enabled processors missing from the order run last
    order += [name for name in config.enabled if name not in order]

    processors = []
    for name in order:
        processor = build_processor(name, config)
        if processor is None:
            logger.warning(f"Unknown processor in config: {name}")
            continue
        processors.append(processor)

    return ProcessorRegistry(processors)
