"""
Collectors for ``Stream.collect``.

A collector is three callables: ``supplier`` creates the result container,
``accumulator`` folds one element into it, ``finisher`` turns the container
into the final result.
"""

from typing import Any, Callable, Dict, List

from functions import identity


class Collector:
    """Mutable reduction recipe"""

    def __init__(
        self,
        supplier: Callable[[], Any],
        accumulator: Callable[[Any, Any], None],
        finisher: Callable[[Any], Any] = identity,
    ):
        self._supplier = supplier
        self._accumulator = accumulator
        self._finisher = finisher

    def supplier(self) -> Callable[[], Any]:
        return self._supplier

    def accumulator(self) -> Callable[[Any, Any], None]:
        return self._accumulator

    def finisher(self) -> Callable[[Any], Any]:
        return self._finisher


def _increment(box, _value) -> None:
    box[0] += 1


def _append_to_group(key_fn):
    def _accumulate(groups: Dict[Any, List[Any]], value: Any) -> None:
        groups.setdefault(key_fn(value), []).append(value)
    return _accumulate


class Collectors:
    """Ready-made collectors"""

    @staticmethod
    def to_list() -> Collector:
        return Collector(list, list.append)

    @staticmethod
    def to_set() -> Collector:
        return Collector(set, set.add)

    @staticmethod
    def joining(separator: str = "", prefix: str = "", suffix: str = "") -> Collector:
        return Collector(
            list,
            lambda parts, value: parts.append(str(value)),
            lambda parts: prefix + separator.join(parts) + suffix,
        )

    @staticmethod
    def counting() -> Collector:
        return Collector(lambda: [0], _increment, lambda box: box[0])

    @staticmethod
    def summing(mapper: Callable[[Any], Any] = identity) -> Collector:
        def _add(box, value):
            box[0] += mapper(value)
        return Collector(lambda: [0], _add, lambda box: box[0])

    @staticmethod
    def grouping_by(key: Callable[[Any], Any]) -> Collector:
        """Dict of key -> list of elements, in pull order."""
        return Collector(dict, _append_to_group(key))

    @staticmethod
    def to_dict(key: Callable[[Any], Any], value: Callable[[Any], Any] = identity) -> Collector:
        """Dict of key -> value; a repeated key raises ValueError."""
        def _put(mapping, element):
            k = key(element)
            if k in mapping:
                raise ValueError(f"Duplicate key: {k!r}")
            mapping[k] = value(element)
        return Collector(dict, _put)
