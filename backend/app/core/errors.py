from __future__ import annotations

"""Error taxonomy for the trend engine.

Intent:
- Bad input is rejected at the boundary and must not be retried unchanged.
- Unknown ids are reported, never fatal.
- "Not enough data yet" is an expected state; callers turn it into an empty result.
- Nothing here is fatal to the process.
"""


class TrendEngineError(RuntimeError):
    """Base error for the scoring and feedback core."""


class ValidationError(TrendEngineError, ValueError):
    """Raised for malformed connections, mentions, feedback or out-of-range values."""


class NotFoundError(TrendEngineError, LookupError):
    """Raised when a source id or brand is unknown."""


class InsufficientDataError(TrendEngineError):
    """Raised when too few feedback/performance samples exist for a recommendation."""
