"""
Error types raised by the recognition engine.

Each error subclasses the built-in exception a caller would otherwise
expect, so ``except ValueError`` keeps working around feature and
classifier calls.
"""


class DimensionMismatchError(ValueError):
    """Input vector length does not match the classifier's input size."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Input size must be {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class InsufficientDataError(ValueError):
    """A feature window contained no samples."""


class EmptyBufferError(LookupError):
    """Peek on a ring buffer that holds no elements."""
