class WorkflowError(Exception):
    """Base exception for workflow-level errors."""


class PreconditionError(WorkflowError):
    """Raised when a stage is invoked before its inputs exist.

    The message is user-facing and is emitted as-is.
    """


class ReferenceValidationError(WorkflowError):
    """Raised when a reference draft is missing required fields."""


class ReferenceNotFoundError(WorkflowError):
    """Raised when a reference id is not in the library."""
