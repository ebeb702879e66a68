"""Caption retrieval errors.

Failures are recovered at the narrowest scope that still has a candidate to
try: an empty or failed format falls through to the next format, a strategy
that runs out of candidates falls through to the next strategy, and only
when all strategies are exhausted does the caller see an error.
"""

from enum import Enum, auto


class ErrorCategory(Enum):
    """Categories for retrieval errors to determine handling."""

    UPSTREAM_EMPTY = auto()  # Option/track/format yielded no usable cues - try next candidate
    UPSTREAM_FAILURE = auto()  # Bad status or transport error - try next candidate
    STRATEGY_EXHAUSTED = auto()  # Strategy out of candidates - try next strategy
    ALL_STRATEGIES_EXHAUSTED = auto()  # Terminal, surfaced to the caller


class CaptionError(Exception):
    """Base class for caption retrieval errors."""

    category: ErrorCategory = ErrorCategory.UPSTREAM_FAILURE

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class UpstreamEmptyError(CaptionError):
    """Raised when a candidate yields zero usable cues."""

    category = ErrorCategory.UPSTREAM_EMPTY


class UpstreamFailureError(CaptionError):
    """Raised on a non-success HTTP status or a transport error."""

    category = ErrorCategory.UPSTREAM_FAILURE


class StrategyExhaustedError(CaptionError):
    """Raised when a strategy has tried every candidate without success."""

    category = ErrorCategory.STRATEGY_EXHAUSTED

    def __init__(self, strategy: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message, status_code=status_code)
        self.strategy = strategy


class AllStrategiesExhaustedError(CaptionError):
    """Raised when every strategy failed. Carries the full attempt trace."""

    category = ErrorCategory.ALL_STRATEGIES_EXHAUSTED

    def __init__(self, message: str, trace: list[str], status_code: int | None = None) -> None:
        self.trace = list(trace)
        full = f"{message} Tried: [{', '.join(self.trace)}]."
        super().__init__(full, status_code=status_code)
        self.reason = message


__all__ = [
    "AllStrategiesExhaustedError",
    "CaptionError",
    "ErrorCategory",
    "StrategyExhaustedError",
    "UpstreamEmptyError",
    "UpstreamFailureError",
]
