"""Exception types shared across the board, the feeds and the engine."""

from typing import Optional


class DynastyBoardError(Exception):
    """Base class for all dynasty board errors."""


class ValidationError(DynastyBoardError):
    """A ranking file is structurally invalid (e.g. required columns missing)."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class TransientFetchError(DynastyBoardError):
    """A feed could not be read: unreachable, non-2xx or malformed JSON.

    Callers are expected to retry later or treat the sub-fetch as empty.
    """

    def __init__(self, feed: str, message: str, resource_id: Optional[str] = None):
        self.feed = feed
        self.resource_id = resource_id
        target = f"{feed} ({resource_id})" if resource_id else feed
        super().__init__(f"{target}: {message}")


class DataShapeError(DynastyBoardError):
    """A scraped or downloaded payload did not have the expected shape."""
