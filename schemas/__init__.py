"""
Pydantic schemas for request/response validation.
"""

from schemas.email_logs import EmailLogListResponse, EmailLogResponse
from schemas.rules import (
    ConditionCheck,
    EmailRuleCreate,
    EmailRuleResponse,
    EmailRuleUpdate,
    RemapFieldRequest,
    RemapFieldResponse,
    RuleConditionsResult,
    RuleTestRequest,
    RuleTestResponse,
    UpdateConditionsRequest,
    UpdateConditionsResponse,
)
from schemas.submissions import (
    RuleJobResponse,
    RuleOutcomeResponse,
    SubmissionCreate,
    SubmissionCreatedResponse,
)
from schemas.templates import (
    FormVariable,
    FormVariablesResponse,
    TemplatePreviewRequest,
    TemplatePreviewResponse,
)

__all__ = [
    "ConditionCheck",
    "EmailLogListResponse",
    "EmailLogResponse",
    "EmailRuleCreate",
    "EmailRuleResponse",
    "EmailRuleUpdate",
    "FormVariable",
    "FormVariablesResponse",
    "RemapFieldRequest",
    "RemapFieldResponse",
    "RuleConditionsResult",
    "RuleJobResponse",
    "RuleOutcomeResponse",
    "RuleTestRequest",
    "RuleTestResponse",
    "SubmissionCreate",
    "SubmissionCreatedResponse",
    "TemplatePreviewRequest",
    "TemplatePreviewResponse",
    "UpdateConditionsRequest",
    "UpdateConditionsResponse",
]
