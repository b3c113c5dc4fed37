"""Email log endpoints: what the rule pipeline sent (or failed to send)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import logfire

from api.dependencies import PaginationParams
from database import get_db
from models import EmailLog, EmailLogStatus
from schemas.email_logs import EmailLogListResponse, EmailLogResponse
from utils.validators import get_or_404, parse_uuid_or_400


router = APIRouter(prefix="/api/email-logs", tags=["Email Logs"])


@router.get("/", response_model=EmailLogListResponse)
def list_email_logs(
    pagination: PaginationParams,
    form_id: Optional[str] = Query(default=None),
    submission_id: Optional[str] = Query(default=None),
    rule_id: Optional[str] = Query(default=None),
    correlation_id: Optional[str] = Query(default=None),
    status: Optional[EmailLogStatus] = Query(default=None),
    db: Session = Depends(get_db),
):
    """
    Email logs, newest first.

    Filter by correlation_id to see every attempt of one pipeline run.
    """
    limit = pagination["limit"]
    offset = pagination["offset"]

    with logfire.span("api.list_email_logs", limit=limit, offset=offset):
        query = db.query(EmailLog)
        if form_id:
            query = query.filter(EmailLog.form_id == parse_uuid_or_400(form_id, "form ID"))
        if submission_id:
            query = query.filter(EmailLog.submission_id == parse_uuid_or_400(submission_id, "submission ID"))
        if rule_id:
            query = query.filter(EmailLog.rule_id == parse_uuid_or_400(rule_id, "rule ID"))
        if correlation_id:
            query = query.filter(EmailLog.correlation_id == correlation_id)
        if status is not None:
            query = query.filter(EmailLog.status == status.value)

        total = query.count()
        items = query.order_by(EmailLog.created_at.desc()).limit(limit).offset(offset).all()

        return EmailLogListResponse(
            items=[EmailLogResponse.model_validate(item) for item in items],
            total=total,
            limit=limit,
            offset=offset,
        )


@router.get("/{log_id}", response_model=EmailLogResponse)
def get_email_log(
    log_id: str,
    db: Session = Depends(get_db),
):
    log_uuid = parse_uuid_or_400(log_id, "email log ID")
    with logfire.span("api.get_email_log", log_id=log_id):
        return get_or_404(db, EmailLog, log_uuid, "Email log")
