"""
Authorization error taxonomy.

``ResourceNotFound`` and ``AccessDenied`` describe expected outcomes and are
normally returned as ``AccessDecision`` values; they are raised only by the
boolean helpers that cannot express a third state. ``LookupFailure`` means the
store itself failed and always propagates.
"""

from __future__ import annotations


class AccessError(Exception):
    """Base class for access policy errors."""


class ResourceNotFound(AccessError):
    def __init__(self, resource: str, resource_id: object = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class AccessDenied(AccessError):
    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"Access denied to {resource}")


class LookupFailure(AccessError):
    """The backing store could not answer a lookup."""

    def __init__(self, lookup: str, cause: BaseException | None = None):
        self.lookup = lookup
        self.cause = cause
        super().__init__(f"Lookup failed: {lookup}")
