import logging

import pytest
from models import OperationSpec
from stream import Stream
from utils import (
    build_stream,
    clear_performance_metrics,
    get_performance_summary,
    measure_performance,
    process_stream_operations,
    setup_logging,
    validate_lazy_evaluation,
)


class TestMeasurePerformance:
    """Test performance measurement helpers"""

    def test_measure_returns_result_and_metrics(self):
        info = measure_performance("to_array", Stream.range(0, 100).to_array)
        assert info["result"] == list(range(100))
        assert info["success"] is True
        assert info["execution_time_ms"] >= 0
        assert info["memory_usage_mb"] >= 0
        assert info["result_size"] == 100
        assert "rss_delta_mb" in info

    def test_measure_passes_arguments(self):
        info = measure_performance("sum", lambda a, b=0: a + b, 2, b=3)
        assert info["result"] == 5
        assert info["result_size"] is None

    def test_failure_is_recorded_and_reraised(self):
        def boom():
            raise RuntimeError("kaboom")

        with pytest.raises(RuntimeError, match="kaboom"):
            measure_performance("boom", boom)
        summary = get_performance_summary()
        assert summary["total_operations"] == 1
        assert summary["failed_operations"] == 1
        assert summary["stream_operations"] == 0

    def test_summary(self):
        assert get_performance_summary()["total_operations"] == 0
        assert get_performance_summary()["avg_time_ms"] == 0.0

        measure_performance("a", Stream.range(0, 10).count)
        measure_performance("b", Stream.range(0, 10).count)
        summary = get_performance_summary()
        assert summary["total_operations"] == 2
        assert summary["avg_time_ms"] == pytest.approx(summary["total_time_ms"] / 2)

        clear_performance_metrics()
        assert get_performance_summary()["total_operations"] == 0

    def test_stream_shape_recorded(self):
        """Test that measuring a stream's terminal records its pipeline shape"""
        stream = Stream.iterate(0, lambda n: n + 1).map(str).limit(3)
        info = measure_performance("shape", stream.to_array)
        assert info["stage_count"] == 2
        assert info["unbounded"] is False

        measure_performance("plain", sum, [1, 2])
        summary = get_performance_summary()
        assert summary["stream_operations"] == 1, "Only the stream call carries a shape"
        assert summary["max_stage_count"] == 2
        assert summary["unbounded_operations"] == 0
        assert summary["total_result_items"] == 3

    def test_limited_infinite_stream_uses_little_memory(self):
        info = measure_performance(
            "naturals",
            Stream.iterate(0, lambda n: n + 1).map(lambda n: n * 2).skip(100_000).limit(3).to_array,
        )
        assert info["result"] == [200_000, 200_002, 200_004]
        assert info["memory_usage_mb"] < 10, "Lazy chain should not buffer skipped elements"


class TestBuildStream:
    """Test declarative stream construction"""

    def test_build_from_dicts(self):
        stream = build_stream(range(10), [
            {"type": "filter", "function": lambda x: x % 2 == 1},
            {"type": "map", "function": lambda x: x * 10},
            {"type": "skip", "count": 1},
            {"type": "limit", "count": 2},
        ])
        assert validate_lazy_evaluation(stream)
        assert stream.to_array() == [30, 50]

    def test_build_from_specs_on_existing_stream(self):
        base = Stream.of([3, 1, 3, 2])
        stream = build_stream(base, [
            OperationSpec(type="distinct"),
            OperationSpec(type="sorted", function=lambda a, b: b - a),
        ])
        assert stream.to_array() == [3, 2, 1]

    def test_build_flatten_operations(self):
        stream = build_stream(["ab", "c"], [
            {"type": "flat_map_list", "function": list},
            {"type": "flat_map", "function": lambda ch: Stream.of_values(ch, ch.upper())},
        ])
        assert stream.to_array() == ["a", "A", "b", "B", "c", "C"]

    def test_invalid_operation(self):
        with pytest.raises(ValueError):
            build_stream([1], [{"type": "map"}])


class TestProcessStreamOperations:
    """Test the measured end-to-end helper"""

    def test_success(self):
        report = process_stream_operations([5, 3, 5, 1], [
            {"type": "distinct"},
            {"type": "sorted"},
            {"type": "map", "function": str},
        ])
        assert report["result"] == ["1", "3", "5"]
        assert report["operations_applied"] == ["distinct", "sorted", "map"]
        assert report["performance"]["input_size"] == 4
        assert report["performance"]["output_size"] == 3
        assert report["performance"]["lazy_evaluation"] is True
        assert report["performance"]["stage_count"] == 3

    def test_error_report(self):
        report = process_stream_operations([1, 0], [{"type": "map", "function": lambda x: 1 / x}])
        assert "error" in report
        assert report["operations_applied"] == ["map"]
        assert report["performance"]["error"] is True

    def test_generator_input_size_unknown(self):
        report = process_stream_operations((x for x in range(3)), [{"type": "limit", "count": 2}])
        assert report["result"] == [0, 1]
        assert report["performance"]["input_size"] is None


class TestSetupLogging:
    """Test logger configuration"""

    def test_single_handler(self):
        logger = setup_logging("debug")
        setup_logging("debug")
        tagged = [h for h in logger.handlers if h.get_name() == "lazystream"]
        assert len(tagged) == 1
        assert logger.level == logging.DEBUG
        assert logger.name == "lazystream"

    def test_level_from_settings(self):
        from settings import configure

        configure(log_level="error")
        assert setup_logging().level == logging.ERROR
