"""
Lazy streams.

A stream is a sequence of elements of possibly unlimited length plus a chain
of operations to apply to them. Nothing is computed when an operation is
declared; work happens only when a terminal operation asks for results.

Intermediate operations come in three flavours:

* stateless (map, filter, peek, flat_map*, skip): each element is processed
  on its own, one at a time, only when needed;
* stateful (distinct, sorted): the stage must see all of its upstream input
  before emitting anything;
* short-circuiting (limit): stops pulling from upstream once satisfied, which
  turns an infinite stream into a finite one.

Terminal operations (count, reduce, to_array, find_first, any_match, ...)
drive the pipeline and produce a result. Some are short-circuiting too.

Caution: short-circuiting only protects a pipeline whose stateful stages are
preceded by a limit. ``Stream.iterate(1, inc).find_first()`` returns at once;
``Stream.iterate(1, inc).distinct().find_first()`` never returns because
distinct tries to collect the whole infinite source first.
``Stream.iterate(1, inc).limit(10).distinct().find_first()`` is fine. Set
``guard_unbounded_stateful`` in the settings to fail fast instead of hanging.

A stream drives a single pipeline. Running a second terminal operation on a
stream that has already been consumed returns only what is left, usually
nothing.
"""

import logging
import warnings
from typing import Any, Callable, Iterable, List

from collectors import Collector, Collectors
from functions import default_comparator, default_equality, identity
from models import PipelineDescription
from optional import Optional
from pipeline import ProcessorPipeline
from processors import (
    DistinctProcessor,
    FilterProcessor,
    LimitProcessor,
    ListFlatMapProcessor,
    MapProcessor,
    OptionalFlatMapProcessor,
    PeekProcessor,
    Processor,
    SkipProcessor,
    SortProcessor,
    StreamFlatMapProcessor,
)
from sources import (
    ArraySource,
    ConcatSource,
    IterableSource,
    IterateSource,
    RangeSource,
    Source,
    SupplierSource,
)

logger = logging.getLogger("lazystream.stream")

_NO_SEED = object()


class StreamIterator:
    """Step-by-step access to a stream's elements."""

    def __init__(self, stream: "Stream"):
        self._stream = stream

    def has_next(self) -> bool:
        """Optimistic: False means exhausted, True may still be followed by an empty get_next()."""
        return self._stream._pipeline.has_next()

    def get_next(self) -> Optional:
        return self._stream._get_next_processed_item()

    def try_advance(self, consumer: Callable[[Any], None]) -> bool:
        """Hand the next element to ``consumer``; False if there was none."""
        item = self.get_next()
        if item.is_present():
            consumer(item.get())
            return True
        return False

    def __iter__(self):
        return self

    def __next__(self):
        item = self.get_next()
        if item.is_empty():
            raise StopIteration
        return item.get()


class Stream:
    """Fluent lazy sequence over a ProcessorPipeline."""

    def __init__(self, pipeline: ProcessorPipeline):
        self._pipeline = pipeline
        self._processing_started = False

    # --------- constructors ----------
    @staticmethod
    def of(items: Iterable[Any]) -> "Stream":
        """Stream over a snapshot of ``items``."""
        return Stream.of_source(ArraySource(items))

    @staticmethod
    def of_values(*values: Any) -> "Stream":
        return Stream.of_source(ArraySource(values))

    @staticmethod
    def of_value(value: Any) -> "Stream":
        return Stream.of_source(ArraySource([value]))

    @staticmethod
    def of_iterable(iterable: Iterable[Any]) -> "Stream":
        """Stream pulling lazily from ``iterable``, which may be a generator."""
        return Stream.of_source(IterableSource(iterable))

    @staticmethod
    def of_source(source: Source) -> "Stream":
        return Stream(ProcessorPipeline.create(source))

    @staticmethod
    def empty() -> "Stream":
        return Stream.of_source(ArraySource(()))

    @staticmethod
    def generate(supplier: Callable[[], Any]) -> "Stream":
        """Infinite stream of ``supplier()`` results."""
        return Stream.of_source(SupplierSource(supplier))

    @staticmethod
    def iterate(seed: Any, step: Callable[[Any], Any]) -> "Stream":
        """Infinite stream ``seed, step(seed), step(step(seed)), ...``."""
        return Stream.of_source(IterateSource(seed, step))

    @staticmethod
    def concat(first: "Stream", second: "Stream") -> "Stream":
        """All elements of ``first`` followed by all elements of ``second``."""
        return Stream.of_source(ConcatSource(first, second)).flat_map_optional(identity)

    @staticmethod
    def range(start, end, step=None) -> "Stream":
        """
        ``start`` up to but excluding ``end`` in increments of ``step`` (default 1).

        When start is greater than end the range counts down and the step's
        sign is flipped to match, so ``range(5, 0)`` and ``range(5, 0, 1)``
        both yield 5, 4, 3, 2, 1. Equal bounds give an empty stream.
        """
        return Stream.of_source(RangeSource(start, end, step))

    @staticmethod
    def range_closed(start, end, step=None) -> "Stream":
        """Like ``range`` but ``end`` itself is included when the steps land on it."""
        return Stream.of_source(RangeSource(start, end, step, closed=True))

    # --------- internals ----------
    def _with_processor(self, processor: Processor) -> "Stream":
        return Stream(self._pipeline.add_processor(processor))

    def _get_next_processed_item(self) -> Optional:
        self._processing_started = True
        return self._pipeline.get_next_result()

    def get_next(self) -> Optional:
        """Pull one element; an empty Optional means the stream is exhausted."""
        return self._get_next_processed_item()

    @property
    def processing_started(self) -> bool:
        return self._processing_started

    def is_unbounded(self) -> bool:
        return self._pipeline.is_unbounded()

    def describe(self) -> PipelineDescription:
        return self._pipeline.describe(started=self._processing_started)

    def duplicate(self) -> "Stream":
        """
        Independent copy of this stream, buffered state and source position
        included, for driving two continuations from the same point.
        Supplier sources share their supplier between the copies.
        """
        return Stream(self._pipeline.duplicate())

    # --------- intermediate operations ----------
    def map(self, transformer: Callable[[Any], Any]) -> "Stream":
        return self._with_processor(MapProcessor(transformer))

    def filter(self, predicate: Callable[[Any], bool]) -> "Stream":
        return self._with_processor(FilterProcessor(predicate))

    def peek(self, consumer: Callable[[Any], None]) -> "Stream":
        """
        Call ``consumer`` on every element as it passes, without changing it.
        Meant for debugging; the consumer should not mutate the elements.
        """
        return self._with_processor(PeekProcessor(consumer))

    def flat_map(self, transformer: Callable[[Any], "Stream"]) -> "Stream":
        """Replace each element by the elements of the stream ``transformer`` returns."""
        return self._with_processor(StreamFlatMapProcessor(transformer))

    def flat_map_list(self, transformer: Callable[[Any], Iterable[Any]]) -> "Stream":
        """Replace each element by the elements of the list ``transformer`` returns."""
        return self._with_processor(ListFlatMapProcessor(transformer))

    def flat_map_optional(self, transformer: Callable[[Any], Optional]) -> "Stream":
        """
        Keep the values of the present Optionals ``transformer`` returns.
        Same as ``map(f).filter(Optional.is_present).map(Optional.get)``.
        """
        return self._with_processor(OptionalFlatMapProcessor(transformer))

    def limit(self, max_size: int) -> "Stream":
        """At most ``max_size`` elements; negative sizes give an empty stream."""
        return self._with_processor(LimitProcessor(max_size))

    def skip(self, n: int) -> "Stream":
        """Discard the first ``n`` elements; negative ``n`` skips nothing."""
        return self._with_processor(SkipProcessor(n))

    def distinct(self, equals: Callable[[Any, Any], bool] = None) -> "Stream":
        """First occurrence of each element under ``equals`` (default ``==``)."""
        return self._with_processor(DistinctProcessor(equals or default_equality))

    def sorted(self, comparator: Callable[[Any, Any], int] = None) -> "Stream":
        """Stable sort by ``comparator`` (default natural ordering)."""
        return self._with_processor(SortProcessor(comparator or default_comparator))

    # --------- terminal operations ----------
    def all_match(self, predicate: Callable[[Any], bool]) -> bool:
        """True if every element matches; True for an empty stream."""
        item = self._get_next_processed_item()
        while item.is_present():
            if not predicate(item.get()):
                return False
            item = self._get_next_processed_item()
        return True

    def any_match(self, predicate: Callable[[Any], bool]) -> bool:
        """True if some element matches; False for an empty stream."""
        item = self._get_next_processed_item()
        while item.is_present():
            if predicate(item.get()):
                return True
            item = self._get_next_processed_item()
        return False

    def none_match(self, predicate: Callable[[Any], bool]) -> bool:
        """True if no element matches; True for an empty stream."""
        item = self._get_next_processed_item()
        while item.is_present():
            if predicate(item.get()):
                return False
            item = self._get_next_processed_item()
        return True

    def count(self) -> int:
        total = 0
        item = self._get_next_processed_item()
        while item.is_present():
            total += 1
            item = self._get_next_processed_item()
        return total

    def find_first(self) -> Optional:
        return self._get_next_processed_item()

    def find_any(self) -> Optional:
        # evaluation is sequential, so "any" is always the first element
        return self._get_next_processed_item()

    def for_each_ordered(self, consumer: Callable[[Any], None]) -> None:
        item = self._get_next_processed_item()
        while item.is_present():
            consumer(item.get())
            item = self._get_next_processed_item()

    def for_each(self, consumer: Callable[[Any], None]) -> None:
        self.for_each_ordered(consumer)

    def collect(self, supplier_or_collector, accumulator=None, combiner=None):
        """
        Mutable reduction.

        Either ``collect(collector)`` with a ``Collector``, or
        ``collect(supplier, accumulator, combiner)``. The combiner exists for
        symmetry with parallel reducers and is never called.
        """
        if isinstance(supplier_or_collector, Collector):
            collector = supplier_or_collector
            container = collector.supplier()()
            accumulate = collector.accumulator()
            item = self._get_next_processed_item()
            while item.is_present():
                accumulate(container, item.get())
                item = self._get_next_processed_item()
            return collector.finisher()(container)
        if accumulator is None:
            raise TypeError("collect() needs a Collector or a supplier and an accumulator")
        return self._collect_into(supplier_or_collector, accumulator)

    def custom_collect(self, supplier, accumulator, combiner=None):
        """Deprecated, use ``collect(supplier, accumulator, combiner)``."""
        warnings.warn(
            "custom_collect() is deprecated, use collect()",
            DeprecationWarning,
            stacklevel=2,
        )
        return self._collect_into(supplier, accumulator)

    def _collect_into(self, supplier, accumulator):
        container = supplier()
        item = self._get_next_processed_item()
        while item.is_present():
            accumulator(container, item.get())
            item = self._get_next_processed_item()
        return container

    def reduce(self, accumulator: Callable[[Any, Any], Any], initial: Any = _NO_SEED) -> Optional:
        """
        Left fold. Returns the seed (if given) for an empty stream, an empty
        Optional for an empty stream without a seed.
        """
        current = Optional.empty() if initial is _NO_SEED else Optional.of(initial)
        item = self._get_next_processed_item()
        while item.is_present():
            if current.is_present():
                current = Optional.of(accumulator(current.get(), item.get()))
            else:
                current = item
            item = self._get_next_processed_item()
        return current

    def max(self, comparator: Callable[[Any, Any], int] = None) -> Optional:
        """Largest element; the first of equal maxima wins."""
        compare = comparator or default_comparator
        best = self._get_next_processed_item()
        item = best
        while item.is_present():
            if compare(item.get(), best.get()) > 0:
                best = item
            item = self._get_next_processed_item()
        return best

    def min(self, comparator: Callable[[Any, Any], int] = None) -> Optional:
        """Smallest element; the first of equal minima wins."""
        compare = comparator or default_comparator
        best = self._get_next_processed_item()
        item = best
        while item.is_present():
            if compare(item.get(), best.get()) < 0:
                best = item
            item = self._get_next_processed_item()
        return best

    def to_array(self) -> List[Any]:
        return self.collect(Collectors.to_list())

    def stream_iterator(self) -> StreamIterator:
        return StreamIterator(self)

    def __iter__(self):
        return self.stream_iterator()

    def __repr__(self) -> str:
        return f"<Stream {self._pipeline!r} started={self._processing_started}>"
