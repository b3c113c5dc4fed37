"""
Pydantic schemas for the email log (diagnostic) endpoints.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class EmailLogResponse(BaseModel):
    id: uuid.UUID
    correlation_id: str
    form_id: Optional[uuid.UUID]
    submission_id: Optional[uuid.UUID]
    rule_id: Optional[uuid.UUID]
    template_id: Optional[uuid.UUID]
    recipient: Optional[str]
    cc_recipients: Optional[str]
    bcc_recipients: Optional[str]
    subject: Optional[str]
    status: str
    error: Optional[str]
    provider_message_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EmailLogListResponse(BaseModel):
    items: List[EmailLogResponse]
    total: int
    limit: int
    offset: int
