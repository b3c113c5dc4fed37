"""
Pydantic schemas for form submission intake.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SubmissionCreate(BaseModel):
    """Request body for POST /api/forms/{form_id}/submissions"""

    data: Dict[str, Any] = Field(
        ...,
        description="Field values keyed by stable id (ephemeral ids are accepted as well)",
    )
    lead_id: Optional[uuid.UUID] = Field(
        default=None,
        description="Existing lead to attach; otherwise one is created from contact fields",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "data": {
                    "contactInfo_fullName": "Dana Lee",
                    "email": "dana@example.com",
                    "eventDetails_guestCount": "120",
                    "status": "confirmed",
                }
            }
        }
    )


class SubmissionCreatedResponse(BaseModel):
    """Response for POST /api/forms/{form_id}/submissions"""

    submission_id: uuid.UUID
    lead_id: Optional[uuid.UUID]
    job_id: uuid.UUID = Field(..., description="Poll GET /api/email-rules/jobs/{job_id} for rule results")


class RuleOutcomeResponse(BaseModel):
    rule_id: str
    rule_name: str
    status: str
    matched: bool
    recipient: Optional[str] = None
    error: Optional[str] = None
    message_id: Optional[str] = None
    unresolved_placeholders: List[str] = Field(default_factory=list)


class RuleJobResponse(BaseModel):
    """Response for GET /api/email-rules/jobs/{job_id}"""

    id: uuid.UUID
    form_id: uuid.UUID
    submission_id: Optional[uuid.UUID]
    status: str
    current_step: Optional[str]
    processed_rule_count: Optional[int]
    queued_email_count: Optional[int]
    rule_outcomes: Optional[List[RuleOutcomeResponse]]
    error_message: Optional[str]
    created_at: Optional[datetime]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)
