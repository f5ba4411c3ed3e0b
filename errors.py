"""Exception taxonomy for lazy sequence pipelines."""

from typing import Any


class SequenceError(Exception):
    """Base class for every error raised by the sequence engine."""
    pass


class InvalidRangeError(SequenceError, ValueError):
    """Raised when a range is built with start > end or non-integer bounds."""

    def __init__(self, start: Any, end: Any, message: str = None):
        self.start = start
        self.end = end
        super().__init__(message or f"Start ({start}) can not be greater than end ({end})")


class NotANumberError(SequenceError, TypeError):
    """Raised by a numeric terminal evaluator when it pulls a non-numeric element."""

    def __init__(self, value: Any, operation: str, message: str = None):
        self.value = value
        self.operation = operation
        super().__init__(
            message or f"{operation}() requires numeric elements, got {type(value).__name__}: {value!r}"
        )


class EmptySequenceError(SequenceError, ValueError):
    """Raised by min()/max() when the sequence yields no elements."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation}() of an empty sequence")


class InvalidCountError(SequenceError, ValueError):
    """Raised when take/skip/batch/page receive an unusable count."""
    pass


class SequenceReuseError(SequenceError):
    """Raised when an exhausted sequence is pulled under the strict reuse policy."""
    pass


class SequenceOwnershipError(SequenceError):
    """Raised when a sequence that already feeds a stage is consumed again."""
    pass
