"""
Utility functions for the lazy stream engine

Logging setup, settings access, performance measurement and declarative
construction of operation chains.
"""

import gc
import logging
import sys
import time
import tracemalloc
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import psutil

from models import OperationSpec, OperationType
from settings import configure, get_settings, reset_settings
from stream import Stream

__all__ = [
    "setup_logging",
    "configure",
    "get_settings",
    "reset_settings",
    "measure_performance",
    "get_performance_summary",
    "clear_performance_metrics",
    "validate_lazy_evaluation",
    "build_stream",
    "process_stream_operations",
]

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s:%(lineno)d] - %(message)s'
HANDLER_NAME = "lazystream"

logger = logging.getLogger("lazystream.utils")


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stdout handler to the lazystream logger hierarchy"""
    root = logging.getLogger("lazystream")
    level_name = level or get_settings().log_level
    root.setLevel(level_name.upper())
    if not any(h.get_name() == HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    return root


# One record per measured call, newest last
_measurements: List[Dict[str, Any]] = []


def _describe_target(func: Callable) -> Dict[str, Any]:
    """Pipeline shape of the stream a bound terminal operation belongs to"""
    owner = getattr(func, "__self__", None)
    if not isinstance(owner, Stream):
        return {"stage_count": None, "unbounded": None}
    description = owner.describe()
    return {"stage_count": description.stage_count, "unbounded": description.unbounded}


def measure_performance(operation_name: str, func: Callable, *args, **kwargs) -> Dict[str, Any]:
    """
    Measure a function call: wall time, traced peak memory and process RSS.

    When ``func`` is a bound method of a Stream (``stream.to_array``,
    ``stream.count``, ...) the pipeline's stage count and unbounded flag are
    recorded with the timings. Failures are recorded and re-raised.
    """
    record = {"operation": operation_name, **_describe_target(func)}
    process = psutil.Process()
    rss_before = process.memory_info().rss

    tracemalloc.start()
    gc.collect()
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)
    except Exception as e:
        record["error"] = str(e)
        raise
    finally:
        record["execution_time_ms"] = (time.perf_counter() - start_time) * 1000
        _, peak = tracemalloc.get_traced_memory()
        tracemalloc.stop()
        record["memory_usage_mb"] = peak / 1024 / 1024
        record["success"] = "error" not in record
        record["timestamp"] = time.time()
        _measurements.append(record)
        if record["success"]:
            logger.debug(f"{operation_name} completed in {record['execution_time_ms']:.2f}ms")
        else:
            logger.error(f"{operation_name} failed after {record['execution_time_ms']:.2f}ms: {record['error']}")

    record["rss_delta_mb"] = (process.memory_info().rss - rss_before) / 1024 / 1024
    record["result_size"] = len(result) if hasattr(result, "__len__") else None
    return {**record, "result": result}


def get_performance_summary() -> Dict[str, Any]:
    """Totals and averages over every measured call, split by outcome and pipeline shape"""
    count = len(_measurements)
    total_time = sum(m["execution_time_ms"] for m in _measurements)
    total_memory = sum(m["memory_usage_mb"] for m in _measurements)
    stage_counts = [m["stage_count"] for m in _measurements if m["stage_count"] is not None]

    return {
        "total_operations": count,
        "failed_operations": sum(1 for m in _measurements if not m["success"]),
        "total_time_ms": total_time,
        "total_memory_mb": total_memory,
        "avg_time_ms": total_time / count if count else 0.0,
        "avg_memory_mb": total_memory / count if count else 0.0,
        "stream_operations": len(stage_counts),
        "max_stage_count": max(stage_counts, default=0),
        "unbounded_operations": sum(1 for m in _measurements if m["unbounded"]),
        "total_result_items": sum(m.get("result_size") or 0 for m in _measurements),
    }


def clear_performance_metrics() -> None:
    _measurements.clear()


def validate_lazy_evaluation(stream: Stream) -> bool:
    """True if ``stream`` has been declared but never driven"""
    if not isinstance(stream, Stream):
        return False
    if stream.processing_started:
        return False
    return all(stage.pending_inputs == 0 for stage in stream.describe().stages)


def build_stream(source: Union[Stream, Iterable[Any]],
                 operations: List[Union[OperationSpec, Dict[str, Any]]]) -> Stream:
    """Apply a list of declarative operations to a stream (or to a stream over ``source``)"""
    stream = source if isinstance(source, Stream) else Stream.of_iterable(source)

    for op in operations:
        spec = op if isinstance(op, OperationSpec) else OperationSpec(**op)

        if spec.type == OperationType.MAP:
            stream = stream.map(spec.function)
        elif spec.type == OperationType.FILTER:
            stream = stream.filter(spec.function)
        elif spec.type == OperationType.PEEK:
            stream = stream.peek(spec.function)
        elif spec.type == OperationType.FLAT_MAP:
            stream = stream.flat_map(spec.function)
        elif spec.type == OperationType.FLAT_MAP_LIST:
            stream = stream.flat_map_list(spec.function)
        elif spec.type == OperationType.FLAT_MAP_OPTIONAL:
            stream = stream.flat_map_optional(spec.function)
        elif spec.type == OperationType.DISTINCT:
            stream = stream.distinct(spec.function)
        elif spec.type == OperationType.SORTED:
            stream = stream.sorted(spec.function)
        elif spec.type == OperationType.LIMIT:
            stream = stream.limit(spec.count)
        elif spec.type == OperationType.SKIP:
            stream = stream.skip(spec.count)

    return stream


def process_stream_operations(source_data: Iterable[Any],
                              operations: List[Union[OperationSpec, Dict[str, Any]]]) -> Dict[str, Any]:
    """Build a stream from declarative operations, drain it and report performance"""

    start_time = time.perf_counter()
    operations_applied = []

    try:
        specs = [op if isinstance(op, OperationSpec) else OperationSpec(**op) for op in operations]
        operations_applied = [spec.type.value for spec in specs]
        stream = build_stream(source_data, specs)

        measured = measure_performance("stream_chain", stream.to_array)
        result = measured["result"]

        processing_time_ms = (time.perf_counter() - start_time) * 1000

        return {
            "result": result,
            "operations_applied": operations_applied,
            "performance": {
                "processing_time_ms": processing_time_ms,
                "memory_usage_mb": measured["memory_usage_mb"],
                "input_size": len(source_data) if hasattr(source_data, "__len__") else None,
                "output_size": len(result),
                "stage_count": measured["stage_count"],
                "lazy_evaluation": True,
                "operation": "stream_chain"
            }
        }

    except Exception as e:
        processing_time_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Stream chain {operations_applied} failed: {e}")

        return {
            "error": str(e),
            "operations_applied": operations_applied,
            "performance": {
                "processing_time_ms": processing_time_ms,
                "error": True
            }
        }
