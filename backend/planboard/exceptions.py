"""Planboard exceptions.

Read paths never raise these for an unavailable backend (they degrade to
empty results); write paths do, so callers never lose a write silently.
"""


class PlanboardError(Exception):
    """Base exception for engine errors."""

    def __init__(self, message: str, code: str = "PLANBOARD_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class BackendUnavailableError(PlanboardError):
    """The persistence backend is not configured or cannot be reached.

    Raised by write operations (creating relations or field definitions).
    """

    def __init__(self, operation: str, reason: str | None = None):
        self.operation = operation
        self.reason = reason
        message = f"Database not available for {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message=message, code="BACKEND_UNAVAILABLE")


class FieldNotFoundError(PlanboardError):
    """A lookup or rollup field definition does not exist."""

    def __init__(self, field_kind: str, field_id: int):
        self.field_kind = field_kind
        self.field_id = field_id
        super().__init__(
            message=f"{field_kind.capitalize()} field {field_id} not found",
            code="FIELD_NOT_FOUND",
        )


class RelationNotFoundError(PlanboardError):
    """A relation row does not exist."""

    def __init__(self, relation_id: int):
        self.relation_id = relation_id
        super().__init__(
            message=f"Relation {relation_id} not found",
            code="RELATION_NOT_FOUND",
        )
