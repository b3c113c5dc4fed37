"""
Models module initialization.
Imports all SQLAlchemy models for Alembic autodiscovery.
"""

from models.form import Form, FormField, FormSection
from models.lead import Lead
from models.submission import FormSubmission
from models.email_template import EmailTemplate
from models.email_rule import EmailRule, RecipientType
from models.email_log import EmailLog, EmailLogStatus
from models.rule_job import EmailRuleJob, RuleJobStatus

__all__ = [
    "Form",
    "FormSection",
    "FormField",
    "Lead",
    "FormSubmission",
    "EmailTemplate",
    "EmailRule",
    "RecipientType",
    "EmailLog",
    "EmailLogStatus",
    "EmailRuleJob",
    "RuleJobStatus",
]
