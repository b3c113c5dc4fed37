"""
Models package for Pipeline models

NOTE: not database models
"""

from .core import (
    # Enums
    LogLevel,
    RuleOutcomeStatus,

    # Boundary records
    FieldRecord,
    TemplateRecord,
    RuleRecord,
    SubmissionRecord,
    LeadRecord,
    EmailLogRecord,

    # Core data models
    Condition,
    SelectedRule,
    RuleLogEntry,
    RuleOutcome,
    RuleProcessingData,
    RuleProcessingResult,
    StepResult,
)

__all__ = [
    "LogLevel",
    "RuleOutcomeStatus",
    "FieldRecord",
    "TemplateRecord",
    "RuleRecord",
    "SubmissionRecord",
    "LeadRecord",
    "EmailLogRecord",
    "Condition",
    "SelectedRule",
    "RuleLogEntry",
    "RuleOutcome",
    "RuleProcessingData",
    "RuleProcessingResult",
    "StepResult",
]
