"""Exceptions raised by the class outline service and stores."""


class ClassNodeError(Exception):
    """Base class for errors reported to callers of the outline service."""

    status_code = 500


class NotFoundError(ClassNodeError):
    """A node or parent does not exist, or belongs to another class."""

    status_code = 404


class ForbiddenError(ClassNodeError):
    """A structural change was attempted against an import-locked node."""

    status_code = 403


class BadRequestError(ClassNodeError):
    """The request is malformed or does not match the current sibling set."""

    status_code = 400


class TreeCycleError(ClassNodeError):
    """Parent references in a class form a cycle."""

    status_code = 409

    def __init__(self, node_ids: list[str]) -> None:
        self.node_ids = node_ids
        super().__init__(f"Cycle detected in parent references: {' -> '.join(node_ids)}")


class StoreError(ClassNodeError):
    """The backing node store failed or returned an unexpected payload."""

    status_code = 503


class OperationCancelledError(ClassNodeError):
    """The caller cancelled an operation before it finished."""
