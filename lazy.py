"""
Lazy, single-use sequence pipelines.

A LazySequence pulls its elements one at a time from a cursor. Stages
(map, filter, take, skip, batch, group_by) wrap an upstream sequence in a
new cursor; nothing runs until a terminal evaluator or a for-loop pulls.
"""

import logging
import numbers
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from errors import (
    EmptySequenceError,
    InvalidCountError,
    InvalidRangeError,
    NotANumberError,
    SequenceOwnershipError,
    SequenceReuseError,
)
from models import DEFAULT_CONFIG, PipelineConfig, SequenceState

logger = logging.getLogger(__name__)


# --------- cursors (one per stage kind) ----------

class _SourceCursor:
    """Walks a caller-supplied iterable without copying it."""

    def __init__(self, items):
        self._items = items
        self._it = None

    def __next__(self):
        if self._it is None:
            self._it = iter(self._items)
        return next(self._it)

    def close(self):
        # runs the finally blocks of a generator source
        close = getattr(self._it, "close", None)
        if close is not None:
            close()
        self._it = iter(())


class _RangeCursor:
    """Counts from start to end inclusive."""

    def __init__(self, start, end):
        self._next = start
        self._end = end

    def __next__(self):
        if self._next > self._end:
            raise StopIteration
        value = self._next
        self._next += 1
        return value

    def close(self):
        self._next = self._end + 1


class _StageCursor:
    """Base for cursors that pull from an upstream LazySequence."""

    def __init__(self, upstream: "LazySequence"):
        self._upstream = upstream

    def close(self):
        self._upstream._close()


class _MapCursor(_StageCursor):
    def __init__(self, upstream, mapper):
        super().__init__(upstream)
        self._mapper = mapper

    def __next__(self):
        return _call(self._mapper, self._upstream._pull(), "mapper")


class _FilterCursor(_StageCursor):
    def __init__(self, upstream, predicate):
        super().__init__(upstream)
        self._predicate = predicate

    def __next__(self):
        while True:
            item = self._upstream._pull()
            if _call(self._predicate, item, "predicate"):
                return item


class _TakeCursor(_StageCursor):
    """Stops pulling once `count` elements were handed out."""

    def __init__(self, upstream, count):
        super().__init__(upstream)
        self._count = count
        self._taken = 0

    def __next__(self):
        if self._taken >= self._count:
            # take(0) lands here on its first pull
            self._upstream._close()
            raise StopIteration
        item = self._upstream._pull()
        self._taken += 1
        if self._taken >= self._count:
            self._upstream._close()
        return item


class _SkipCursor(_StageCursor):
    def __init__(self, upstream, count):
        super().__init__(upstream)
        self._remaining = count

    def __next__(self):
        while self._remaining > 0:
            self._upstream._pull()
            self._remaining -= 1
        return self._upstream._pull()


class _BatchCursor(_StageCursor):
    """Packs consecutive elements into tuples of up to `size`."""

    def __init__(self, upstream, size):
        super().__init__(upstream)
        self._size = size
        self._done = False

    def __next__(self):
        if self._done:
            raise StopIteration
        bucket = []
        while len(bucket) < self._size:
            try:
                bucket.append(self._upstream._pull())
            except StopIteration:
                self._done = True
                break
        if not bucket:
            raise StopIteration
        return tuple(bucket)


class _GroupByCursor(_StageCursor):
    """
    Eager barrier: the first pull drains the whole upstream into buckets
    keyed in first-occurrence order, then groups are handed out one by one.
    """

    def __init__(self, upstream, key_selector, config):
        super().__init__(upstream)
        self._key_selector = key_selector
        self._config = config
        self._groups = None

    def _drain(self):
        buckets = {}
        drained = 0
        while True:
            try:
                item = self._upstream._pull()
            except StopIteration:
                break
            drained += 1
            key = _call(self._key_selector, item, "key selector")
            if key not in buckets:
                buckets[key] = []
            buckets[key].append(item)
        logger.debug(f"group_by drained {drained} elements into {len(buckets)} groups")
        return iter(buckets.items())

    def __next__(self):
        if self._groups is None:
            self._groups = self._drain()
        key, bucket = next(self._groups)
        return Group(key=key, values=stream_from(bucket, config=self._config))


# --------- the sequence ----------

class LazySequence:
    """
    A single-use, pull-based producer of a finite ordered run of values.

    The sequence is READY until a pull reports end-of-sequence, a pull
    fails, or a downstream take() stops pulling; from then on it is
    EXHAUSTED for good. Pulling an exhausted sequence yields nothing under
    the permissive reuse policy and raises SequenceReuseError under the
    strict one. A sequence used as the upstream of a stage belongs to that
    stage and can not be consumed directly any more.
    """

    def __init__(self, cursor, config: Optional[PipelineConfig] = None):
        self._cursor = cursor
        self._config = config if config is not None else DEFAULT_CONFIG
        self._state = SequenceState.READY
        self._owned = False

    @classmethod
    def of(cls, items, config: Optional[PipelineConfig] = None) -> "LazySequence":
        """Wrap a finite iterable"""
        return cls(_SourceCursor(items), config)

    # --------- state ----------
    @property
    def state(self) -> SequenceState:
        return self._state

    @property
    def exhausted(self) -> bool:
        return self._state == SequenceState.EXHAUSTED

    @property
    def config(self) -> PipelineConfig:
        return self._config

    # --------- chainable operators (lazy) ----------
    def map(self, mapper: Callable[[Any], Any]) -> "LazySequence":
        return self._stage(_MapCursor(self._claim("map"), mapper))

    def filter(self, predicate: Callable[[Any], bool]) -> "LazySequence":
        return self._stage(_FilterCursor(self._claim("filter"), predicate))

    def take(self, count: int) -> "LazySequence":
        count = _check_count(count, "take")
        return self._stage(_TakeCursor(self._claim("take"), count))

    def skip(self, count: int) -> "LazySequence":
        count = _check_count(count, "skip")
        return self._stage(_SkipCursor(self._claim("skip"), count))

    def group_by(self, key_selector: Callable[[Any], Any]) -> "LazySequence":
        """Group elements by key; drains the whole upstream on the first pull"""
        return self._stage(_GroupByCursor(self._claim("group_by"), key_selector, self._config))

    def batch(self, size: int) -> "LazySequence":
        """Yield tuples of up to `size` consecutive elements"""
        size = _check_count(size, "batch", minimum=1)
        return self._stage(_BatchCursor(self._claim("batch"), size))

    def page(self, page_number: int, page_size: int) -> "LazySequence":
        """Get a specific page of results (1-indexed)"""
        page_number = _check_count(page_number, "page number", minimum=1)
        page_size = _check_count(page_size, "page size", minimum=1)
        return self.skip((page_number - 1) * page_size).take(page_size)

    # LINQ-style names
    select = map
    where = filter

    # --------- terminal evaluators (drain) ----------
    def sum(self):
        """Return the arithmetic sum of all elements, starting at 0"""
        total = 0
        with self._draining() as items:
            for item in items:
                value = _as_number(item, "sum")
                try:
                    total += value
                except TypeError as e:
                    # e.g. Decimal meeting float or Fraction
                    raise NotANumberError(
                        item, "sum",
                        f"sum() can not add {type(value).__name__} to a {type(total).__name__} total"
                    ) from e
        logger.debug(f"sum() finished: {total}")
        return total

    def min(self):
        """Return the smallest element; raises EmptySequenceError if there is none"""
        return self._extreme("min", lambda candidate, best: candidate < best)

    def max(self):
        """Return the largest element; raises EmptySequenceError if there is none"""
        return self._extreme("max", lambda candidate, best: candidate > best)

    def count(self) -> int:
        """Return the count of elements"""
        count = 0
        with self._draining() as items:
            for _ in items:
                count += 1
        return count

    def for_each(self, action: Callable[[Any], None]) -> None:
        with self._draining() as items:
            for item in items:
                action(item)

    def to_list(self) -> list:
        with self._draining() as items:
            return list(items)

    def to_set(self) -> set:
        """Deduplicate by value equality; elements must be hashable"""
        with self._draining() as items:
            return set(items)

    to_array = to_list

    # --------- iterator protocol ----------
    def __iter__(self):
        self._check_unowned()
        return self

    def __next__(self):
        self._check_unowned()
        return self._pull()

    def __repr__(self):
        return f"LazySequence(state={self._state.value})"

    # --------- helpers ----------
    def _pull(self):
        """Produce the next element or raise StopIteration"""
        if self._state == SequenceState.EXHAUSTED:
            self._on_reuse()
            raise StopIteration
        try:
            return next(self._cursor)
        except StopIteration:
            self._state = SequenceState.EXHAUSTED
            raise
        except Exception:
            # a failed pull aborts the whole run
            self._close()
            raise

    @contextmanager
    def _draining(self):
        """Iterate self; an error raised by the consumer exhausts the chain"""
        items = iter(self)
        try:
            yield items
        except Exception:
            self._close()
            raise

    def _close(self):
        """Mark this sequence and its upstream chain exhausted without pulling"""
        if self._state == SequenceState.EXHAUSTED:
            return
        self._state = SequenceState.EXHAUSTED
        self._cursor.close()

    def _on_reuse(self):
        if self._config.strict:
            raise SequenceReuseError(f"{self!r} was already drained and can not be pulled again")
        if self._config.warn_on_reuse:
            logger.warning(f"Pulling an exhausted {self!r}; it yields no elements")

    def _check_unowned(self):
        if self._owned:
            raise SequenceOwnershipError(
                f"{self!r} already feeds a pipeline stage and can not be consumed directly"
            )

    def _claim(self, operation: str) -> "LazySequence":
        self._check_unowned()
        self._owned = True
        logger.debug(f"Adding {operation} stage on {self!r}")
        return self

    def _stage(self, cursor) -> "LazySequence":
        return LazySequence(cursor, self._config)

    def _extreme(self, operation: str, better: Callable[[Any, Any], bool]):
        best = None
        seen = False
        with self._draining() as items:
            for item in items:
                value = _as_number(item, operation)
                if not seen or better(value, best):
                    best = value
                    seen = True
        if not seen:
            raise EmptySequenceError(operation)
        logger.debug(f"{operation}() finished: {best}")
        return best


class Group(BaseModel):
    """A key and a fresh lazy sequence over every element that mapped to it"""
    key: Any
    values: LazySequence

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


# --------- source adapters ----------

def stream_from(items, *, config: Optional[PipelineConfig] = None) -> LazySequence:
    """Wrap a finite iterable; it is not iterated until the sequence is pulled"""
    return LazySequence.of(items, config)


def range(start: int, end: int, *, config: Optional[PipelineConfig] = None) -> LazySequence:
    """Inclusive integer sequence start, start + 1, ..., end"""
    for bound in (start, end):
        if isinstance(bound, bool) or not isinstance(bound, numbers.Integral):
            raise InvalidRangeError(start, end, f"Range bounds must be integers, got {bound!r}")
    if start > end:
        raise InvalidRangeError(start, end)
    return LazySequence(_RangeCursor(int(start), int(end)), config)


def _check_count(value, what: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidCountError(f"{what} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidCountError(f"{what} must be >= {minimum}, got {value}")
    return int(value)


def _call(fn, item, role: str):
    """Run a user callable; a StopIteration from it must not read as end-of-sequence"""
    try:
        return fn(item)
    except StopIteration as e:
        raise RuntimeError(f"{role} raised StopIteration on {item!r}") from e


def _as_number(item, operation: str):
    if isinstance(item, bool) or not isinstance(item, (numbers.Real, Decimal)):
        raise NotANumberError(item, operation)
    return item
