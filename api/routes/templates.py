"""Email template tooling endpoints."""

from fastapi import APIRouter
import logfire

from pipeline.steps.email_dispatcher.template_renderer import extract_variables, render_with_report
from schemas.templates import TemplatePreviewRequest, TemplatePreviewResponse


router = APIRouter(prefix="/api/email-templates", tags=["Email Templates"])


@router.post("/preview", response_model=TemplatePreviewResponse)
async def preview_template(request: TemplatePreviewRequest):
    """
    Render a template against sample data exactly as a real send would.

    Placeholders that cannot be resolved are left verbatim in the output
    and listed in unresolved_placeholders.
    """
    with logfire.span("api.preview_template"):
        subject = render_with_report(request.subject, request.sample_data)
        html = render_with_report(request.html_content, request.sample_data)
        text = render_with_report(request.text_content, request.sample_data) if request.text_content else None

        unresolved = subject.unresolved + html.unresolved + (text.unresolved if text else [])
        variables = (
            extract_variables(request.subject)
            + extract_variables(request.html_content)
            + extract_variables(request.text_content)
        )

        return TemplatePreviewResponse(
            subject=subject.text,
            html=html.text,
            text=text.text if text else None,
            variables=list(dict.fromkeys(variables)),
            unresolved_placeholders=list(dict.fromkeys(unresolved)),
        )
