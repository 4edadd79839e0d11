"""
Optional value container.

Every pull from a pipeline returns an ``Optional`` instead of a sentinel, so
``None`` stays a legal stream element: presence is tracked separately from
the wrapped value.
"""

from typing import Any, Callable, Iterator


class EmptyOptionalError(LookupError):
    """Raised when reading the value out of an empty Optional."""
    pass


class Optional:
    """Either holds exactly one value or is empty."""

    __slots__ = ("_value", "_present")

    _EMPTY = None

    def __init__(self, value: Any = None, present: bool = False):
        self._value = value
        self._present = present

    # --------- constructors ----------
    @classmethod
    def of(cls, value: Any) -> "Optional":
        """Wrap ``value`` as present, ``None`` included."""
        return cls(value, True)

    @classmethod
    def of_nullable(cls, value: Any) -> "Optional":
        """Wrap ``value``, treating ``None`` as empty."""
        if value is None:
            return cls.empty()
        return cls(value, True)

    @classmethod
    def empty(cls) -> "Optional":
        if cls._EMPTY is None:
            cls._EMPTY = cls()
        return cls._EMPTY

    # --------- queries ----------
    def is_present(self) -> bool:
        return self._present

    def is_empty(self) -> bool:
        return not self._present

    def get(self) -> Any:
        if not self._present:
            raise EmptyOptionalError("get() called on an empty Optional")
        return self._value

    def or_else(self, other: Any) -> Any:
        return self._value if self._present else other

    def or_else_get(self, supplier: Callable[[], Any]) -> Any:
        return self._value if self._present else supplier()

    # --------- combinators ----------
    def map(self, fn: Callable[[Any], Any]) -> "Optional":
        """Apply ``fn`` to a present value; the result is always present."""
        if not self._present:
            return self
        return Optional.of(fn(self._value))

    def flat_map(self, fn: Callable[[Any], "Optional"]) -> "Optional":
        if not self._present:
            return self
        return fn(self._value)

    def filter(self, predicate: Callable[[Any], bool]) -> "Optional":
        if self._present and predicate(self._value):
            return self
        return Optional.empty()

    def if_present(self, consumer: Callable[[Any], None]) -> None:
        if self._present:
            consumer(self._value)

    # --------- python protocol ----------
    def __iter__(self) -> Iterator[Any]:
        if self._present:
            yield self._value

    def __bool__(self) -> bool:
        return self._present

    def __eq__(self, other) -> bool:
        if not isinstance(other, Optional):
            return NotImplemented
        if self._present != other._present:
            return False
        return not self._present or self._value == other._value

    def __hash__(self):
        return hash((self._present, self._value)) if self._present else hash(False)

    def __repr__(self) -> str:
        if self._present:
            return f"Optional.of({self._value!r})"
        return "Optional.empty()"
