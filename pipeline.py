"""
Processor pipeline: a source followed by an ordered chain of processors, and
the pull algorithm that turns "give me the next final output" into pulls
from the stages before it.

Appending a processor returns a new pipeline that shares the source and the
existing processors with its parent. Processors carry mutable buffers, so two
pipelines branched from the same prefix must not both be driven; use
``duplicate()`` for an independent copy.
"""

import logging
from typing import Tuple

from models import PipelineDescription, StageClass, StageDescription
from optional import Optional
from processors import Processor
from settings import get_settings
from sources import Source

logger = logging.getLogger("lazystream.pipeline")


class PipelineConfigurationError(ValueError):
    """Raised when a pipeline is declared in a way that cannot be evaluated."""
    pass


class UnboundedPipelineError(PipelineConfigurationError):
    """A stateful stage would have to drain an infinite source."""
    pass


class ProcessorPipeline:
    """Source plus processors, pulled lazily from the last processor."""

    def __init__(self, source: Source, processors: Tuple[Processor, ...] = ()):
        self._source = source
        self._processors = tuple(processors)
        self._source_exhausted = False

    @classmethod
    def create(cls, source: Source) -> "ProcessorPipeline":
        return cls(source)

    @property
    def source(self) -> Source:
        return self._source

    @property
    def processors(self) -> Tuple[Processor, ...]:
        return self._processors

    def add_processor(self, processor: Processor) -> "ProcessorPipeline":
        """New pipeline extended by ``processor``; this pipeline is unchanged."""
        if not processor.is_stateless() and self.is_unbounded():
            settings = get_settings()
            message = (
                f"Stateful '{processor.kind.value}' stage appended to an infinite "
                f"{self._source.kind.value} source with no preceding limit; "
                f"evaluation will never terminate"
            )
            if settings.guard_unbounded_stateful:
                raise UnboundedPipelineError(message)
            if settings.warn_unbounded_stateful:
                logger.warning(message)
        logger.debug("Appending %s stage at position %d", processor.kind.value, len(self._processors))
        return ProcessorPipeline(self._source, self._processors + (processor,))

    def is_unbounded(self) -> bool:
        """Infinite source with no limit stage anywhere in the chain."""
        if not self._source.is_infinite():
            return False
        return not any(p.stage_class == StageClass.SHORT_CIRCUITING for p in self._processors)

    def has_next(self) -> bool:
        """
        Optimistic: False only when exhaustion is already known. A True result
        may still be followed by an empty ``get_next_result()``.
        """
        if self._processors and self._processors[-1].is_short_circuited():
            return False
        if not self._source_exhausted:
            return True
        return any(p.has_next() for p in self._processors)

    def get_next_result(self) -> Optional:
        """
        Next output of the last processor, or empty once the pipeline is exhausted.

        Walks an explicit level index instead of recursing. At each level the
        processor is asked for output; if it has none, input is fetched from the
        level below (the source below level 0) and fed forward with ``accept``.
        When the level below is exhausted the processor is told so, letting a
        stateful processor compute its buffer, and whatever it can still emit
        is passed up. A short-circuited processor is exhausted immediately and
        never pulls from below again.
        """
        processors = self._processors
        if not processors:
            return self._pull_source()

        top = len(processors) - 1
        level = top
        upstream_exhausted = False
        while True:
            processor = processors[level]
            exhausted = False

            if processor.is_short_circuited():
                exhausted = True
            elif processor.is_stateless() or processor.is_drained() or upstream_exhausted:
                if upstream_exhausted:
                    processor.mark_drained()
                if processor.has_next():
                    output = processor.pull_next()
                    if output.is_present():
                        if level == top:
                            return output
                        level += 1
                        upstream_exhausted = False
                        processors[level].accept(output.get())
                    continue
                exhausted = upstream_exhausted

            if exhausted:
                if level == top:
                    return Optional.empty()
                level += 1
                upstream_exhausted = True
                continue

            # needs input from below
            if level == 0:
                item = self._pull_source()
                if item.is_present():
                    processor.accept(item.get())
                else:
                    upstream_exhausted = True
            else:
                level -= 1
                upstream_exhausted = False

    def _pull_source(self) -> Optional:
        if self._source_exhausted:
            return Optional.empty()
        item = self._source.produce_next()
        if item.is_empty():
            self._source_exhausted = True
            logger.debug("%s source exhausted", self._source.kind.value)
        return item

    def duplicate(self) -> "ProcessorPipeline":
        """Deep copy of source position and every processor's buffered state."""
        copy = ProcessorPipeline(self._source.duplicate(), tuple(p.duplicate() for p in self._processors))
        copy._source_exhausted = self._source_exhausted
        return copy

    def describe(self, started: bool = False) -> PipelineDescription:
        return PipelineDescription(
            source_kind=self._source.kind,
            source_infinite=self._source.is_infinite(),
            unbounded=self.is_unbounded(),
            started=started,
            stages=[
                StageDescription(
                    index=index,
                    kind=processor.kind,
                    stage_class=processor.stage_class,
                    stateless=processor.is_stateless(),
                    pending_inputs=processor.pending_inputs,
                    short_circuited=processor.is_short_circuited(),
                )
                for index, processor in enumerate(self._processors)
            ],
        )

    def __repr__(self) -> str:
        chain = " -> ".join(p.kind.value for p in self._processors)
        return f"<ProcessorPipeline {self._source.kind.value}{' -> ' + chain if chain else ''}>"
