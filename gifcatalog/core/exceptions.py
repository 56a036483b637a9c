"""
Catalog error taxonomy.

Every failure raised by the catalog services is a CatalogError subclass
carrying a machine-readable error code plus enough context (entity key,
operation) for a collaborator to render a user-facing message.
"""

from collections.abc import Mapping
from typing import Any


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    error = "catalog_error"

    def __init__(self, message: str, details: Mapping[str, Any] | None = None):
        self.message = message
        self.details = dict(details or {})
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a serializable dictionary."""
        response: dict[str, Any] = {
            "error": self.error,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


class NotFoundError(CatalogError):
    """A lookup by key found no record (item, tag, or alias)."""

    error = "not_found"

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(
            f"{entity.capitalize()} '{key}' not found",
            details={"entity": entity, "key": key},
        )


class UnauthorizedError(CatalogError):
    """An actor attempted a mutation without the required identity or role."""

    error = "unauthorized"

    def __init__(self, message: str, actor_id: int | None = None, action: str | None = None):
        details: dict[str, Any] = {}
        if actor_id is not None:
            details["actor_id"] = actor_id
        if action:
            details["action"] = action
        super().__init__(message, details=details)


class StorageError(CatalogError):
    """
    The backing store returned an error on a read or write.

    The original driver exception is preserved as ``__cause__``.
    """

    error = "storage_failure"

    def __init__(self, operation: str, message: str | None = None, **context: Any):
        self.operation = operation
        self.context = context
        super().__init__(
            message or f"Storage failure during {operation}",
            details={"operation": operation, **context},
        )


class ConflictError(StorageError):
    """
    A unique-key violation while creating a row.

    Callers treat this as success when the conflicting row is identical to
    the one being created; unhandled, it is a plain storage failure.
    """

    error = "conflict"


class ReconcileError(StorageError):
    """One phase of an association reconciliation failed part-way."""

    error = "reconcile_failure"

    def __init__(
        self,
        relation: str,
        phase: str,
        failures: Mapping[str, BaseException],
        **context: Any,
    ):
        self.relation = relation
        self.phase = phase
        self.failures = dict(failures)
        super().__init__(
            f"{relation}.{phase}",
            message=(
                f"Failed to {phase} {len(self.failures)} member(s) of {relation}: "
                f"{', '.join(sorted(self.failures))}"
            ),
            phase=phase,
            failed=sorted(self.failures),
            **context,
        )
