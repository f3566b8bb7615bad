"""Error types for the redaction bot.

Two channels exist. ``ChangesetError`` is recovered per entity batch and the
run carries on with the remaining areas. ``FatalRunError`` ends the run.
"""

from __future__ import annotations


class FatalRunError(RuntimeError):
    """Raised when the run must stop."""


class NoWorkError(FatalRunError):
    """Raised when no region or candidate is available to process."""


class RedactionFailedError(FatalRunError):
    """Raised when the remote API refuses a redaction."""


class ThrottleExhaustedError(FatalRunError):
    """Raised when map reads stay throttled past the attempt limit."""


class AreaTooSmallError(FatalRunError):
    """Raised when an area is below the minimum splittable size."""


class InvalidRedactionIdsError(FatalRunError):
    """Raised when a configured redaction id is not in the source store."""


class MapRequestError(FatalRunError):
    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(f"MAP_REQUEST_FAILED:{status_code}")
        self.status_code = status_code
        self.body = body


class ChangesetError(RuntimeError):
    """Raised when a changeset cannot be opened or uploaded."""


class AreaSplitRequired(Exception):
    """Signals that an area has to be split before it can be read."""
