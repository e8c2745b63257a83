"""Exceptions raised at the edges of the geometry core.

Numeric degeneracy inside the core is never an exception: geometry helpers
return ``None`` and callers fall back. These types cover input that cannot be
turned into geometry at all, and lookups the HTTP layer has to report.
"""

from __future__ import annotations


class SitePlanError(Exception):
    """Base class for site planning errors."""


class InvalidParcelError(SitePlanError, ValueError):
    """Raised when a parcel boundary cannot form a polygon."""

    def __init__(self, message: str, issues: list | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class UnknownObjectError(SitePlanError, KeyError):
    """Raised when a drawn object id does not exist."""

    def __init__(self, object_id: str) -> None:
        super().__init__(object_id)
        self.object_id = object_id

    def __str__(self) -> str:
        return f"No drawn object with id '{self.object_id}'"
