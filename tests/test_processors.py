import pytest
from functions import default_comparator, default_equality
from models import StageClass, StageKind
from optional import Optional
from processors import (
    DistinctProcessor,
    FilterProcessor,
    LimitProcessor,
    ListFlatMapProcessor,
    MapProcessor,
    OptionalFlatMapProcessor,
    PeekProcessor,
    SkipProcessor,
    SortProcessor,
    StreamFlatMapProcessor,
)
from stream import Stream


class TestStatelessProcessors:
    """Test the per-stage contract of stateless processors"""

    def test_accept_does_not_process(self, counter):
        """Test that queuing an input never invokes the transformer"""
        fn = counter(lambda x: x + 1)
        processor = MapProcessor(fn)
        processor.accept(1)
        processor.accept(2)
        assert fn.calls == 0, "accept() must not trigger processing"
        assert processor.has_next()
        assert processor.pull_next() == Optional.of(2)
        assert fn.calls == 1
        assert processor.pull_next() == Optional.of(3)
        assert not processor.has_next()
        assert processor.pull_next().is_empty()

    def test_filter_returns_empty_for_rejected_input(self):
        """Test that a rejected input gives empty without signalling exhaustion"""
        processor = FilterProcessor(lambda x: x > 1)
        processor.accept(1)
        processor.accept(2)
        assert processor.pull_next().is_empty()
        assert processor.has_next(), "A rejected input is not exhaustion"
        assert processor.pull_next() == Optional.of(2)

    def test_peek_passes_value_through(self):
        seen = []
        processor = PeekProcessor(seen.append)
        processor.accept("a")
        assert processor.pull_next() == Optional.of("a")
        assert seen == ["a"]

    def test_skip_drops_first_n(self):
        processor = SkipProcessor(2)
        for i in range(4):
            processor.accept(i)
        results = [processor.pull_next() for _ in range(4)]
        assert results == [Optional.empty(), Optional.empty(), Optional.of(2), Optional.of(3)]

    def test_negative_skip_is_zero(self):
        processor = SkipProcessor(-3)
        processor.accept(1)
        assert processor.pull_next() == Optional.of(1)

    def test_classification(self):
        """Test stateless/stateful/short-circuiting tags"""
        assert MapProcessor(str).is_stateless()
        assert MapProcessor(str).stage_class == StageClass.STATELESS
        assert LimitProcessor(1).is_stateless()
        assert LimitProcessor(1).stage_class == StageClass.SHORT_CIRCUITING
        assert not DistinctProcessor(default_equality).is_stateless()
        assert SortProcessor(default_comparator).stage_class == StageClass.STATEFUL
        assert SkipProcessor(1).kind == StageKind.SKIP


class TestLimitProcessor:
    """Test the short-circuiting limit stage"""

    def test_emits_up_to_bound_then_short_circuits(self):
        processor = LimitProcessor(2)
        for i in range(5):
            processor.accept(i)
        assert processor.pull_next() == Optional.of(0)
        assert not processor.is_short_circuited()
        assert processor.pull_next() == Optional.of(1)
        assert processor.is_short_circuited()
        assert not processor.has_next(), "Limit reached: nothing more to emit"

        processor.accept(99)
        assert processor.pull_next().is_empty(), "Further input must be ignored"

    def test_zero_and_negative_limits(self):
        assert LimitProcessor(0).is_short_circuited()
        assert LimitProcessor(-5).is_short_circuited()


class TestFlatMapProcessors:
    """Test one-to-many expansion"""

    def test_list_expansion_one_per_call(self, counter):
        """Test that the next input is expanded only after the current list runs dry"""
        fn = counter(lambda n: [n] * n)
        processor = ListFlatMapProcessor(fn)
        processor.accept(2)
        processor.accept(1)
        assert processor.pull_next() == Optional.of(2)
        assert fn.calls == 1
        assert processor.pull_next() == Optional.of(2)
        assert fn.calls == 1
        assert processor.pull_next() == Optional.of(1)
        assert fn.calls == 2
        assert not processor.has_next()

    def test_empty_expansion_skips_to_next_input(self):
        processor = ListFlatMapProcessor(lambda n: [] if n == 0 else [n])
        processor.accept(0)
        processor.accept(5)
        assert processor.pull_next() == Optional.of(5)

    def test_stream_expansion_is_lazy(self):
        """Test that an infinite sub-stream is pulled one element at a time"""
        processor = StreamFlatMapProcessor(lambda n: Stream.iterate(n, lambda k: k + 1))
        processor.accept(10)
        assert [processor.pull_next().get() for _ in range(3)] == [10, 11, 12]

    def test_optional_expansion_drops_empties(self):
        processor = OptionalFlatMapProcessor(lambda x: x)
        processor.accept(Optional.empty())
        processor.accept(Optional.of(4))
        assert processor.pull_next() == Optional.of(4)
        assert processor.pull_next().is_empty()

    def test_optional_expansion_rejects_other_iterables(self):
        """Test that a list returned by mistake is an error, not flattened"""
        processor = OptionalFlatMapProcessor(lambda x: [x, x])
        processor.accept(1)
        with pytest.raises(TypeError, match="must return an Optional"):
            processor.pull_next()

    def test_flat_map_optional_type_error_surfaces_from_stream(self):
        stream = Stream.of([1, 2]).flat_map_optional(lambda x: x)
        with pytest.raises(TypeError):
            stream.to_array()


class TestStatefulProcessors:
    """Test distinct and sort buffering"""

    def test_distinct_drains_queue_on_first_pull(self, counter):
        """Test that the whole queue is processed on the first pull"""
        equals = counter(lambda a, b: a == b)
        processor = DistinctProcessor(equals)
        for value in [1, 2, 2, 3, 1]:
            processor.accept(value)
        assert equals.calls == 0, "No comparisons before the first pull"
        assert processor.pull_next() == Optional.of(1)
        assert processor.pending_inputs == 2, "Remaining distinct outputs stay buffered"
        calls_after_first = equals.calls
        assert processor.pull_next() == Optional.of(2)
        assert processor.pull_next() == Optional.of(3)
        assert equals.calls == calls_after_first, "Later pulls emit from the buffer"
        assert processor.pull_next().is_empty()

    def test_distinct_uses_pairwise_caller_equality(self):
        """Test a non-hashable, caller-defined equality"""
        processor = DistinctProcessor(lambda a, b: a["id"] == b["id"])
        for row in [{"id": 1, "v": "a"}, {"id": 1, "v": "b"}, {"id": 2, "v": "c"}]:
            processor.accept(row)
        out = [processor.pull_next().get() for _ in range(2)]
        assert [row["v"] for row in out] == ["a", "c"]

    def test_sort_is_stable(self):
        processor = SortProcessor(lambda a, b: default_comparator(a[0], b[0]))
        for pair in [(2, "x"), (1, "a"), (2, "y"), (1, "b")]:
            processor.accept(pair)
        out = [processor.pull_next().get() for _ in range(4)]
        assert out == [(1, "a"), (1, "b"), (2, "x"), (2, "y")]

    def test_drained_flag(self):
        processor = SortProcessor(default_comparator)
        assert not processor.is_drained()
        processor.mark_drained()
        assert processor.is_drained()


class TestProcessorDuplicate:
    """Test independent copies of processors"""

    def test_duplicate_copies_queue(self):
        processor = MapProcessor(lambda x: x)
        processor.accept(1)
        copy = processor.duplicate()
        copy.accept(2)
        assert processor.pending_inputs == 1
        assert copy.pending_inputs == 2

    def test_duplicate_copies_limit_counter(self):
        processor = LimitProcessor(2)
        processor.accept(1)
        processor.pull_next()
        copy = processor.duplicate()
        copy.accept(5)
        assert copy.pull_next() == Optional.of(5)
        assert copy.is_short_circuited()
        assert not processor.is_short_circuited()
