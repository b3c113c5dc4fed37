"""
Pydantic schemas for email template preview and form variables.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TemplatePreviewRequest(BaseModel):
    """Request body for POST /api/email-templates/preview"""

    subject: str = ""
    html_content: str = Field(..., description="Template body with {{placeholder}} variables")
    text_content: Optional[str] = None
    sample_data: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "subject": "Thanks {{firstName}}!",
                "html_content": "<p>See you at {{weddingDetailsVenueName}}.</p>",
                "sample_data": {"firstName": "Dana", "weddingDetails": {"venueName": "The Barn"}},
            }
        }
    )


class TemplatePreviewResponse(BaseModel):
    subject: str
    html: str
    text: Optional[str] = None
    variables: List[str] = Field(default_factory=list, description="Placeholders referenced by the template")
    unresolved_placeholders: List[str] = Field(default_factory=list)


class FormVariable(BaseModel):
    """One insertable {{placeholder}} for the template editor."""

    key: str
    label: str
    field_type: str
    section: Optional[str] = None
    stable_id_synthesized: bool = False


class FormVariablesResponse(BaseModel):
    form_id: str
    variables: List[FormVariable]
    built_in: List[str] = Field(
        default_factory=list,
        description="Keys added by enrichment regardless of form layout",
    )
