"""Default callables used by the stream operations when the caller supplies none."""

import logging
from typing import Any, Callable

logger = logging.getLogger("lazystream.functions")


def identity(value: Any) -> Any:
    return value


def sink(value: Any) -> None:
    """Consumer that discards its argument."""
    return None


def logger_consumer(level: int = logging.DEBUG) -> Callable[[Any], None]:
    """Consumer that logs every value it receives, handy with ``peek``."""
    def _log(value: Any) -> None:
        logger.log(level, "peek: %r", value)
    return _log


def default_comparator(left: Any, right: Any) -> int:
    """Compare with ``<`` and ``>``: -1, 0 or 1."""
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def reverse_comparator(comparator: Callable[[Any, Any], int] = default_comparator) -> Callable[[Any, Any], int]:
    return lambda left, right: comparator(right, left)


def comparing(key: Callable[[Any], Any]) -> Callable[[Any, Any], int]:
    """Comparator ordering elements by ``key(element)``."""
    return lambda left, right: default_comparator(key(left), key(right))


def default_equality(left: Any, right: Any) -> bool:
    return left == right


def identity_equality(left: Any, right: Any) -> bool:
    return left is right
