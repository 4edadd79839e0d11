"""
Processors: the stages of a pipeline.

A processor is a lazy processing node. ``accept`` only queues an input;
work happens in ``pull_next``. Stateless processors handle one queued input
at a time. Stateful processors (distinct, sort) process their whole queue on
the first ``pull_next`` and then emit from a precomputed buffer, so the
pipeline hands them all available upstream input before asking for output.

``pull_next`` returning an empty Optional means "nothing available from the
queued input right now", never "exhausted": a filter that rejects its input
or a flat-map expanding to nothing both return empty while more input may
still arrive.
"""

import functools
import itertools
import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Iterator, List

from models import StageClass, StageKind
from optional import Optional

logger = logging.getLogger("lazystream.processors")

_EXHAUSTED = object()


class Processor(ABC):
    """Base processor: owns the FIFO input queue."""

    kind: StageKind

    def __init__(self):
        self._inputs = deque()

    def accept(self, value: Any) -> None:
        """Queue one input. Never processes it."""
        self._inputs.append(value)

    def _take_next_input(self) -> Optional:
        if self._inputs:
            return Optional.of(self._inputs.popleft())
        return Optional.empty()

    def has_next(self) -> bool:
        """True when an output may be produced without new input."""
        return len(self._inputs) > 0

    @property
    def pending_inputs(self) -> int:
        return len(self._inputs)

    @abstractmethod
    def pull_next(self) -> Optional:
        ...

    def is_stateless(self) -> bool:
        return True

    def is_short_circuited(self) -> bool:
        """True once the processor will never emit again, whatever it is fed."""
        return False

    def is_drained(self) -> bool:
        return True

    def mark_drained(self) -> None:
        """Signal that upstream is exhausted. Only stateful processors care."""
        pass

    @property
    def stage_class(self) -> StageClass:
        return StageClass.STATELESS if self.is_stateless() else StageClass.STATEFUL

    def duplicate(self) -> "Processor":
        """Independent copy of this processor and its buffered state."""
        copy = self.__class__.__new__(self.__class__)
        copy.__dict__.update(self.__dict__)
        copy._inputs = deque(self._inputs)
        return copy

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value} pending={len(self._inputs)}>"


# ---------- stateless ----------

class MapProcessor(Processor):
    """Transforms each input with ``transformer``."""

    kind = StageKind.MAP

    def __init__(self, transformer: Callable[[Any], Any]):
        super().__init__()
        self._transformer = transformer

    def pull_next(self) -> Optional:
        return self._take_next_input().map(self._transformer)


class PeekProcessor(Processor):
    """Hands each input to ``consumer`` and passes it on unchanged."""

    kind = StageKind.PEEK

    def __init__(self, consumer: Callable[[Any], None]):
        super().__init__()
        self._consumer = consumer

    def pull_next(self) -> Optional:
        value = self._take_next_input()
        value.if_present(self._consumer)
        return value


class FilterProcessor(Processor):
    """Keeps only the inputs matching ``predicate``."""

    kind = StageKind.FILTER

    def __init__(self, predicate: Callable[[Any], bool]):
        super().__init__()
        self._predicate = predicate

    def pull_next(self) -> Optional:
        return self._take_next_input().filter(self._predicate)


class _FlatMapProcessor(Processor):
    """
    One-to-many mapping. Each input is expanded into an iterator of outputs
    that is walked one element per call; the next input is expanded only
    once the current iterator runs dry.
    """

    def __init__(self, transformer: Callable[[Any], Any]):
        super().__init__()
        self._transformer = transformer
        self._pending: Iterator[Any] = None

    @abstractmethod
    def _expand(self, value: Any) -> Iterator[Any]:
        ...

    def has_next(self) -> bool:
        return self._pending is not None or len(self._inputs) > 0

    @property
    def pending_inputs(self) -> int:
        return len(self._inputs) + (1 if self._pending is not None else 0)

    def pull_next(self) -> Optional:
        while True:
            if self._pending is not None:
                value = next(self._pending, _EXHAUSTED)
                if value is not _EXHAUSTED:
                    return Optional.of(value)
                self._pending = None
            if not self._inputs:
                return Optional.empty()
            self._pending = self._expand(self._transformer(self._inputs.popleft()))

    def duplicate(self) -> "Processor":
        copy = super().duplicate()
        if self._pending is not None:
            # tee so the two copies walk the rest of the current expansion independently
            self._pending, copy._pending = itertools.tee(self._pending)
        return copy


class ListFlatMapProcessor(_FlatMapProcessor):
    """Flattens the list (or any iterable) returned for each input."""

    kind = StageKind.FLAT_MAP_LIST

    def _expand(self, value: Any) -> Iterator[Any]:
        return iter(value)


class StreamFlatMapProcessor(_FlatMapProcessor):
    """Flattens the stream returned for each input, pulling it lazily."""

    kind = StageKind.FLAT_MAP_STREAM

    def _expand(self, value: Any) -> Iterator[Any]:
        return iter(value)


class OptionalFlatMapProcessor(_FlatMapProcessor):
    """Unwraps the Optional returned for each input, dropping empties."""

    kind = StageKind.FLAT_MAP_OPTIONAL

    def _expand(self, value: Optional) -> Iterator[Any]:
        if not isinstance(value, Optional):
            raise TypeError(
                f"flat_map_optional() transformer must return an Optional, got {type(value).__name__}"
            )
        return iter(value)


class SkipProcessor(Processor):
    """Drops the first ``n`` inputs, then passes the rest through."""

    kind = StageKind.SKIP

    def __init__(self, n: int):
        super().__init__()
        self._to_skip = max(int(n), 0)
        self._skipped = 0

    def pull_next(self) -> Optional:
        value = self._take_next_input()
        if value.is_present() and self._skipped < self._to_skip:
            self._skipped += 1
            return Optional.empty()
        return value


class LimitProcessor(Processor):
    """
    Short-circuiting: passes inputs through until ``max_size`` have been
    emitted, then reports itself permanently exhausted.
    """

    kind = StageKind.LIMIT

    def __init__(self, max_size: int):
        super().__init__()
        self._max_size = max(int(max_size), 0)
        self._emitted = 0

    def has_next(self) -> bool:
        return not self.is_short_circuited() and len(self._inputs) > 0

    def is_short_circuited(self) -> bool:
        return self._emitted >= self._max_size

    @property
    def stage_class(self) -> StageClass:
        return StageClass.SHORT_CIRCUITING

    def pull_next(self) -> Optional:
        if self.is_short_circuited():
            return Optional.empty()
        value = self._take_next_input()
        if value.is_present():
            self._emitted += 1
            if self.is_short_circuited():
                self._inputs.clear()
                logger.debug("Limit of %d reached", self._max_size)
        return value


# ---------- stateful ----------

class _StatefulProcessor(Processor):
    """
    Collects every input before producing anything. The first ``pull_next``
    after the pipeline marks the processor drained processes the whole queue
    into an output buffer; later calls emit from that buffer.
    """

    def __init__(self):
        super().__init__()
        self._drained = False
        self._buffer = None

    def is_stateless(self) -> bool:
        return False

    def is_drained(self) -> bool:
        return self._drained

    def mark_drained(self) -> None:
        self._drained = True

    def has_next(self) -> bool:
        return len(self._inputs) > 0 or bool(self._buffer)

    @property
    def pending_inputs(self) -> int:
        return len(self._inputs) + (len(self._buffer) if self._buffer else 0)

    @abstractmethod
    def _process(self, values: List[Any]) -> List[Any]:
        ...

    def pull_next(self) -> Optional:
        if not self._buffer and self._inputs:
            values = list(self._inputs)
            self._inputs.clear()
            logger.debug("%s processing %d buffered inputs", self.kind.value, len(values))
            self._buffer = deque(self._process(values))
        if self._buffer:
            return Optional.of(self._buffer.popleft())
        return Optional.empty()

    def duplicate(self) -> "Processor":
        copy = super().duplicate()
        if self._buffer is not None:
            copy._buffer = deque(self._buffer)
        return copy


class DistinctProcessor(_StatefulProcessor):
    """
    Keeps the first occurrence of every element under ``equals``.

    Elements are compared pairwise against every element kept so far. The
    equality test is caller supplied and need not be transitive or agree with
    ``__hash__``, so no hashing is used.
    """

    kind = StageKind.DISTINCT

    def __init__(self, equals: Callable[[Any, Any], bool]):
        super().__init__()
        self._equals = equals
        self._kept: List[Any] = []

    def _process(self, values: List[Any]) -> List[Any]:
        fresh = []
        for item in values:
            if not any(self._equals(item, kept) for kept in self._kept):
                self._kept.append(item)
                fresh.append(item)
        return fresh

    def duplicate(self) -> "Processor":
        copy = super().duplicate()
        copy._kept = list(self._kept)
        return copy


class SortProcessor(_StatefulProcessor):
    """Stable sort of all inputs by ``comparator``."""

    kind = StageKind.SORT

    def __init__(self, comparator: Callable[[Any, Any], int]):
        super().__init__()
        self._comparator = comparator

    def _process(self, values: List[Any]) -> List[Any]:
        return sorted(values, key=functools.cmp_to_key(self._comparator))
