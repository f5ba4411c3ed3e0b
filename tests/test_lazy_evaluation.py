import pytest
import time
from lazy import stream_from, range as lazy_range


class TestLazyEvaluation:
    """Test core lazy evaluation functionality"""

    def test_deferred_execution(self, tracker):
        """Test that operations are not executed immediately"""
        track_calls = tracker(lambda x: x * 2)

        # Create lazy sequence - should not execute yet
        seq = stream_from(range(10)).map(track_calls)
        assert track_calls.count == 0, "Operations should not execute during definition"

        # Take only first 3 items
        result = seq.take(3).to_list()
        assert track_calls.count == 3, f"Expected exactly 3 calls, got {track_calls.count}"
        assert result == [0, 2, 4], f"Unexpected result: {result}"

    def test_take_zero_never_pulls(self, tracker):
        """Test that take(0) never invokes an upstream mapper"""
        mapper = tracker(lambda x: x + 1)
        result = stream_from([1, 2, 3]).map(mapper).take(0).to_list()
        assert result == []
        assert mapper.count == 0, f"Mapper was called {mapper.count} times"

    def test_take_does_not_pull_beyond_count(self, tracker):
        """Test that take stops pulling once the count is reached"""
        pulled = tracker()
        seq = stream_from(range(100)).map(pulled).take(5)
        assert seq.to_list() == [0, 1, 2, 3, 4]
        assert pulled.calls == [0, 1, 2, 3, 4]

    def test_filter_pulls_until_match(self, tracker):
        """Test that filter pulls just enough upstream for each output"""
        seen = tracker()
        seq = stream_from([1, 3, 5, 6, 7, 8]).map(seen).filter(lambda x: x % 2 == 0)

        assert next(seq) == 6
        assert seen.calls == [1, 3, 5, 6], f"Pulled too much: {seen.calls}"
        assert next(seq) == 8
        assert seen.calls == [1, 3, 5, 6, 7, 8]

    def test_skip_is_lazy_until_first_pull(self, tracker):
        """Test that skip discards its prefix only when pulled"""
        seen = tracker()
        seq = stream_from(range(10)).map(seen).skip(4)
        assert seen.count == 0

        assert next(seq) == 4
        assert seen.calls == [0, 1, 2, 3, 4]

    def test_one_element_at_a_time(self):
        """Test that stages interleave per element instead of per stage"""
        events = []

        def first(x):
            events.append(("first", x))
            return x

        def second(x):
            events.append(("second", x))
            return x

        stream_from([1, 2]).map(first).map(second).to_list()
        assert events == [("first", 1), ("second", 1), ("first", 2), ("second", 2)]

    def test_lazy_evaluation_with_side_effects(self):
        """Test that side effects only occur when operations are executed"""
        side_effects = []

        def side_effect_map(x):
            side_effects.append(f"processed {x}")
            return x * 2

        seq = stream_from([1, 2, 3, 4, 5]).map(side_effect_map)
        assert len(side_effects) == 0, "Side effects should not occur during definition"

        result = seq.take(2).to_list()

        assert side_effects == ["processed 1", "processed 2"], f"Unexpected side effects: {side_effects}"
        assert result == [2, 4], f"Unexpected result: {result}"

    def test_lazy_evaluation_performance(self):
        """Test that lazy evaluation stays fast for small outputs of large inputs"""
        start_time = time.perf_counter()
        result = (
            lazy_range(0, 10**9)
            .map(lambda x: x * x)
            .filter(lambda x: x % 1000 == 0)
            .take(5)
            .to_list()
        )
        lazy_time = time.perf_counter() - start_time

        assert result == [0, 10000, 40000, 90000, 160000]
        assert lazy_time < 1.0, f"Lazy evaluation took too long: {lazy_time:.2f}s"

    def test_python_iteration(self):
        """Test that a sequence can be consumed with a for-loop"""
        collected = []
        for item in stream_from("abc").map(str.upper):
            collected.append(item)
        assert collected == ["A", "B", "C"]
