"""Error types raised by the DevOps client and pipeline orchestration."""

from collections.abc import Sequence


class DevOpsApiError(RuntimeError):
    """Raised when the remote service answers with a non-success status."""

    def __init__(self, operation: str, status: int, text: str) -> None:
        super().__init__(f"Failed to {operation}: {status} {text}")
        self.operation = operation
        self.status = status
        self.text = text


class ResourceNotFoundError(DevOpsApiError):
    """Raised when the remote resource does not exist (HTTP 404)."""


class TemplateRenderError(ValueError):
    """Raised when a pipeline template cannot be fully rendered."""


class MissingEnvironmentOptionError(LookupError):
    """Raised when no static options are configured for an environment."""


class AgentPoolNotFoundError(LookupError):
    """Raised when the configured agent pool is missing from the project."""


class PipelineSetupError(RuntimeError):
    """Raised when creating or updating a pipeline fails part way.

    Attributes:
        step: The orchestration step that failed
        completed_steps: Steps that already changed remote state before the
            failure, so callers can tell "nothing happened" from
            "partially applied"

    """

    def __init__(
        self, step: str, completed_steps: Sequence[str], cause: BaseException
    ) -> None:
        super().__init__(f"Pipeline setup failed at step '{step}': {cause}")
        self.step = step
        self.completed_steps = tuple(completed_steps)

    @property
    def partially_applied(self) -> bool:
        """Whether any remote state was changed before the failure."""
        return bool(self.completed_steps)
