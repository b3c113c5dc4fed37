"""
Custom exceptions for pipeline execution.

Only RuleSetLoadError is meant to abort a run; the per-rule errors are
caught inside the steps and turned into log entries.
"""


class PipelineExecutionError(Exception):
    """
    Base exception for pipeline execution failures.

    All step-specific exceptions inherit from this.
    """
    pass


class StepExecutionError(PipelineExecutionError):
    """
    Raised when a pipeline step fails.

    Attributes:
        step_name: Name of the failed step
        original_error: The underlying exception (may be None after deserialization)

    Note: Custom attributes are embedded in the message to survive
    Celery's JSON serialization.
    """

    def __init__(self, step_name: str, original_error: Exception):
        self.step_name = step_name
        self.original_error = original_error
        error_message = f"Step '{step_name}' failed: {str(original_error)}"
        super().__init__(error_message)


class ValidationError(PipelineExecutionError):
    """
    Raised when step input validation fails.

    Example: the rule selector runs without a form id
    """
    pass


class RuleSetLoadError(PipelineExecutionError):
    """
    Raised when the rule set or the form fields cannot be loaded at all.

    The only fatal failure of a run.
    """
    pass


class ConditionParseError(PipelineExecutionError):
    """Raised when a rule's stored condition JSON cannot be parsed."""
    pass
