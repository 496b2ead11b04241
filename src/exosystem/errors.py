from __future__ import annotations

from typing import Any


class ExosystemError(Exception):
    """Base class for every failure raised by this package."""


class MalformedRecordError(ExosystemError, ValueError):
    def __init__(self, message: str, *, stage: str, record: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.record = record


class ImputationExhaustedError(ExosystemError, ValueError):
    """Raised when a planet has neither mass nor radius and random fill-in is disabled.

    ``planet`` holds the body as far as it could be built, with mass and radius
    left absent and the gap noted in its assumptions.
    """

    def __init__(self, message: str, *, planet: Any) -> None:
        super().__init__(message)
        self.planet = planet


class DegenerateSystemError(ExosystemError, ValueError):
    pass


class ArchiveQueryError(ExosystemError, RuntimeError):
    def __init__(self, message: str, *, query: str | None = None) -> None:
        super().__init__(message)
        self.query = query
