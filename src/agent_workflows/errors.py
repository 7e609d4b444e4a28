"""
Workflow error types.
"""

from typing import List, Optional


class WorkflowError(Exception):
    """Base exception for workflow errors."""

    error_type = "error"

    def __init__(self, message: str, step_key: Optional[str] = None):
        self.message = message
        self.step_key = step_key
        super().__init__(message)


class StructuralError(WorkflowError):
    """Raised when a definition cannot run at all (bad agent/action wiring)."""

    error_type = "structural"

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid workflow definition: " + "; ".join(self.problems))


class ValidationError(WorkflowError):
    """Raised when a step's resolved input is missing required fields."""

    error_type = "validation"

    def __init__(self, errors: List[str], step_key: Optional[str] = None):
        self.errors = list(errors)
        super().__init__("Invalid input: " + ", ".join(self.errors), step_key)


class HandlerError(WorkflowError):
    """Raised when an action handler fails or reports failure."""

    error_type = "handler"

    def __init__(self, message: str, step_key: Optional[str] = None, output=None):
        super().__init__(message, step_key)
        self.output = output


class StepTimeoutError(HandlerError):
    """Raised when an action handler exceeds the step deadline."""

    error_type = "timeout"


class DeadlineExceededError(WorkflowError):
    """Raised for steps that could not start before the run deadline."""

    error_type = "deadline"


class DependencyError(WorkflowError):
    """Raised when a step's input references the result of a failed step."""

    error_type = "dependency"

    def __init__(self, failed_keys: List[str], step_key: Optional[str] = None):
        self.failed_keys = list(failed_keys)
        super().__init__(
            "Depends on failed step(s): " + ", ".join(self.failed_keys),
            step_key,
        )


class ActionNotFoundError(WorkflowError):
    """Raised when an action name is not registered."""

    error_type = "not_found"

    def __init__(self, action_name: str):
        self.action_name = action_name
        super().__init__(f"Unknown action: {action_name}")


class ContextInUseError(WorkflowError):
    """Raised when a context or engine is reused while owned by another run."""
    pass


class WorkflowNotFoundError(WorkflowError):
    """Raised when a stored workflow does not exist."""
    pass


class TemplateNotFoundError(WorkflowError):
    """Raised when a template name is not in the catalog."""
    pass


class WorkflowAccessDeniedError(WorkflowError):
    """Raised when a caller does not own the requested workflow."""
    pass


class UpstreamError(WorkflowError):
    """Raised when the LLM proxy or tool gateway returns an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageUnavailableError(WorkflowError):
    """Raised when stored workflows are requested without a database."""
    pass
