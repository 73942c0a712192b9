"""Processor registry - ordering processors and running the content pipeline."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from ..errors import DuplicateProcessorError, ProcessorError, ProcessorNotFoundError
from .base import BaseProcessor, ProcessingContext, ProcessingResult

logger = logging.getLogger(__name__)


@dataclass
class PipelineCallbacks:
    """
    Callbacks for pipeline progress reporting.

    Allows the CLI to display progress without coupling the registry to Rich.
    All callbacks are optional - if None, no callback is made.
    """

    on_processor_start: Callable[[str], None] | None = None  # processor name
    on_processor_complete: Callable[[str, ProcessingResult], None] | None = None
    on_processor_skipped: Callable[[str], None] | None = None  # nothing to do
    on_processor_error: Callable[[str, str], None] | None = None  # name, message


class ProcessorRegistry:
    """
    Name-keyed set of processors with a deterministic processing order.

    Processors are registered once, typically at construction; registering a
    name twice is an error. Without set_order() the order is registration
    order.
    """

    def __init__(self, processors: Iterable[BaseProcessor] = ()):
        self._processors: dict[str, BaseProcessor] = {}
        self._order: list[str] | None = None
        for processor in processors:
            self.register(processor)

    def register(self, processor: BaseProcessor) -> None:
        """
        Add a processor.

        Raises:
            DuplicateProcessorError: If the name is already registered
        """
        if processor.name in self._processors:
            raise DuplicateProcessorError(processor.name)
        self._processors[processor.name] = processor
        logger.debug(f"Registered processor {processor.name}")

    def get(self, name: str) -> BaseProcessor | None:
        return self._processors.get(name)

    def names(self) -> list[str]:
        return list(self._processors)

    def get_all(self) -> list[BaseProcessor]:
        return list(self._processors.values())

    def get_processors_for_content(self, content: str) -> list[BaseProcessor]:
        """Processors (in processing order) whose quick check matches ``content``."""
        return [p for p in self.get_processors_in_order() if p.can_process(content)]

    def set_order(self, names: list[str]) -> None:
        """
        Fix the processing order.

        Processors not named are left out of default runs.

        Raises:
            ProcessorNotFoundError: If any name is not registered
        """
        self._check_names(names)
        self._order = list(names)

    def get_processors_in_order(self) -> list[BaseProcessor]:
        names = self._order if self._order is not None else self.names()
        return [self._processors[name] for name in names]

    def _check_names(self, names: list[str]) -> None:
        unknown = [name for name in names if name not in self._processors]
        if unknown:
            raise ProcessorNotFoundError(unknown)

    def process_content(
        self,
        content: str,
        context: ProcessingContext,
        names: list[str] | None = None,
        callbacks: PipelineCallbacks | None = None,
    ) -> ProcessingResult:
        """
        Run processors over a document, each seeing the previous one's output.

        Args:
            content: Document text
            context: Output locations for this run
            names: Processors to run, in order (default: configured order)
            callbacks: Optional progress callbacks

        Returns:
            Combined result; ``success`` is False only when a processor could
            not run at all (ProcessorError). Per-block failures are embedded
            in the document and listed in ``errors``.

        Raises:
            ProcessorNotFoundError: If ``names`` contains an unknown processor
        """
        cb = callbacks or PipelineCallbacks()
        if names is None:
            processors = self.get_processors_in_order()
        else:
            self._check_names(names)
            processors = [self._processors[name] for name in names]

        combined = ProcessingResult(success=True, processed_content=content)

        for processor in processors:
            if not processor.can_process(combined.processed_content):
                if cb.on_processor_skipped:
                    cb.on_processor_skipped(processor.name)
                continue

            if cb.on_processor_start:
                cb.on_processor_start(processor.name)

            try:
                result = processor.process(combined.processed_content, context)
            except ProcessorError as e:
                logger.error(f"Processor {processor.name} cannot run: {e}")
                combined.success = False
                combined.errors.append(str(e))
                if cb.on_processor_error:
                    cb.on_processor_error(processor.name, str(e))
                break
            except Exception as e:
                # A broken processor must not take the rest of the pipeline down
                logger.exception(f"Processor {processor.name} failed")
                combined.errors.append(f"{processor.name}: {e}")
                if cb.on_processor_error:
                    cb.on_processor_error(processor.name, str(e))
                continue

            combined.processed_content = result.processed_content
            combined.artifacts.extend(result.artifacts)
            combined.blocks_processed += result.blocks_processed
            combined.errors.extend(result.errors)
            if not result.success:
                combined.success = False

            if cb.on_processor_complete:
                cb.on_processor_complete(processor.name, result)

        return combined

    def cleanup(self, context: ProcessingContext) -> None:
        """Remove intermediate files of every registered processor."""
        for processor in self.get_all():
            processor.cleanup(context)
