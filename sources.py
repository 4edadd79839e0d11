"""
Sources: the leaf producers at the root of every pipeline.

A source hands out one element per ``produce_next()`` call wrapped in an
``Optional``; an empty result means the source is exhausted, and it stays
exhausted for every later call.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List

from models import SourceKind
from optional import Optional

logger = logging.getLogger("lazystream.sources")


class Source(ABC):
    """Base class for all sources"""

    kind: SourceKind

    @abstractmethod
    def produce_next(self) -> Optional:
        """Return the next element, or an empty Optional once exhausted."""
        ...

    def is_infinite(self) -> bool:
        return False

    @abstractmethod
    def duplicate(self) -> "Source":
        """Independent copy positioned where this source currently is."""
        ...


class ArraySource(Source):
    """Yields the stored elements in order."""

    kind = SourceKind.ARRAY

    def __init__(self, items: Iterable[Any]):
        self._items: List[Any] = list(items)
        self._index = 0

    def produce_next(self) -> Optional:
        if self._index >= len(self._items):
            return Optional.empty()
        value = self._items[self._index]
        self._index += 1
        return Optional.of(value)

    def duplicate(self) -> "ArraySource":
        copy = ArraySource(())
        copy._items = self._items
        copy._index = self._index
        return copy


class IterableSource(Source):
    """Pulls lazily from any Python iterable; the iterator is created on the first pull."""

    kind = SourceKind.ITERABLE

    def __init__(self, iterable: Iterable[Any]):
        self._iterable = iterable
        self._iterator = None
        self._exhausted = False

    def produce_next(self) -> Optional:
        if self._exhausted:
            return Optional.empty()
        if self._iterator is None:
            self._iterator = iter(self._iterable)
        try:
            return Optional.of(next(self._iterator))
        except StopIteration:
            self._exhausted = True
            self._iterator = None
            logger.debug("Iterable source exhausted")
            return Optional.empty()

    def duplicate(self) -> "IterableSource":
        # An iterator can only be walked once; tee it so both copies see the rest.
        copy = IterableSource(())
        copy._exhausted = self._exhausted
        if not self._exhausted:
            remaining = self._iterator if self._iterator is not None else iter(self._iterable)
            self._iterator, copy._iterator = itertools.tee(remaining)
        return copy


class SupplierSource(Source):
    """Calls a zero-argument supplier for every element; never exhausts."""

    kind = SourceKind.SUPPLIER

    def __init__(self, supplier: Callable[[], Any]):
        self._supplier = supplier

    def produce_next(self) -> Optional:
        return Optional.of(self._supplier())

    def is_infinite(self) -> bool:
        return True

    def duplicate(self) -> "SupplierSource":
        # The supplier is shared; a stateful supplier advances for both copies.
        return SupplierSource(self._supplier)


class IterateSource(Source):
    """Yields ``seed``, then ``step(previous)`` forever."""

    kind = SourceKind.ITERATE

    def __init__(self, seed: Any, step: Callable[[Any], Any]):
        self._step = step
        self._current = seed
        self._started = False

    def produce_next(self) -> Optional:
        if self._started:
            self._current = self._step(self._current)
        else:
            self._started = True
        return Optional.of(self._current)

    def is_infinite(self) -> bool:
        return True

    def duplicate(self) -> "IterateSource":
        copy = IterateSource(self._current, self._step)
        copy._started = self._started
        return copy


class RangeSource(Source):
    """
    Numeric range from ``start`` towards ``end``.

    The step direction follows the direction from start to end: a step whose
    sign disagrees is negated. ``start == end`` yields nothing unless the
    range is closed, in which case it yields ``start`` once. A closed range
    never yields a value past ``end``.
    """

    kind = SourceKind.RANGE

    def __init__(self, start, end, step=None, closed: bool = False):
        if step is not None and step == 0:
            raise ValueError("Range step must not be zero")
        self.start = start
        self.end = end
        self.closed = closed
        direction = -1 if start > end else 1
        self.step = abs(step if step is not None else 1) * direction
        self._index = 0

    def _in_range(self, value) -> bool:
        if self.step > 0:
            return value <= self.end if self.closed else value < self.end
        return value >= self.end if self.closed else value > self.end

    def produce_next(self) -> Optional:
        # computed from the index, not accumulated, so float steps do not drift
        value = self.start + self._index * self.step
        if not self._in_range(value):
            return Optional.empty()
        self._index += 1
        return Optional.of(value)

    def duplicate(self) -> "RangeSource":
        copy = RangeSource(self.start, self.end, self.step, self.closed)
        copy._index = self._index
        return copy


class ConcatSource(Source):
    """
    Source of ``Optional`` values drawn from two streams in turn.

    Every real element comes out wrapped as ``Optional.of(Optional.of(v))``;
    once both streams are exhausted the outer Optional is empty. Flattening
    the inner Optional away yields the plain concatenation.
    """

    kind = SourceKind.CONCAT

    def __init__(self, first, second):
        self._first = first
        self._second = second
        self._first_exhausted = False
        self._second_exhausted = False

    def produce_next(self) -> Optional:
        if not self._first_exhausted:
            value = self._first.get_next()
            if value.is_present():
                return Optional.of(value)
            self._first_exhausted = True
            logger.debug("Concat source switched to second stream")
        if not self._second_exhausted:
            value = self._second.get_next()
            if value.is_present():
                return Optional.of(value)
            self._second_exhausted = True
        return Optional.empty()

    def is_infinite(self) -> bool:
        return self._first.is_unbounded() or self._second.is_unbounded()

    def duplicate(self) -> "ConcatSource":
        copy = ConcatSource(self._first.duplicate(), self._second.duplicate())
        copy._first_exhausted = self._first_exhausted
        copy._second_exhausted = self._second_exhausted
        return copy
