"""
Error taxonomy for the analysis pipeline.

Every domain failure carries the component that raised it, a message, whether
the run can continue, and a context dict for logs and API responses.
"""

from typing import Any


class SchoolChatError(Exception):
    """
    Base exception for pipeline component errors.

    Attributes:
        component: Name of the component that raised the error
        message: Error description
        recoverable: Whether the pipeline can continue without this stage
        context: Additional context for debugging
    """

    def __init__(
        self,
        component: str,
        message: str,
        recoverable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        self.component = component
        self.message = message
        self.recoverable = recoverable
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/API responses."""
        return {
            "component": self.component,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": self.context,
            "type": self.__class__.__name__,
        }


class ValidationError(SchoolChatError):
    """Query rejected by the SQL validator. Carries every violated rule."""

    def __init__(
        self,
        errors: list[str],
        component: str = "SqlValidator",
        context: dict[str, Any] | None = None,
    ):
        self.errors = list(errors)
        super().__init__(
            component,
            f"SQL validation failed: {', '.join(self.errors)}",
            recoverable=False,
            context={**(context or {}), "errors": self.errors},
        )


class GenerationError(SchoolChatError):
    """The completion service failed to produce SQL."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("SqlGenerator", message, recoverable=False, context=context)


class ExecutionError(SchoolChatError):
    """Database or proxy failure. The driver message is kept verbatim."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("QueryExecutor", message, recoverable=False, context=context)


class DecompositionError(SchoolChatError):
    """A query could not be reduced to table/select/clauses for the proxy."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("QueryDecomposer", message, recoverable=False, context=context)


class VisualizationError(SchoolChatError):
    """Chart building failed. Degrades to a warning inside a pipeline run."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("VisualizationBuilder", message, recoverable=True, context=context)


class EmptyDataError(VisualizationError):
    """No rows to visualize."""

    def __init__(self, message: str = "Data must be a non-empty array"):
        super().__init__(message)


class SummaryError(SchoolChatError):
    """Narrative summary failed. Degrades to a warning inside a pipeline run."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("SummaryBuilder", message, recoverable=True, context=context)


class InvalidInputError(SchoolChatError):
    """A custom pipeline entry point was handed unusable input."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__("AnalysisPipeline", message, recoverable=False, context=context)
