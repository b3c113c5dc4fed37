"""create_forms_and_email_rules

Initial schema for form intake and rule-driven notifications: forms with
sections and fields (stable ids), leads, submissions, email templates,
email rules, email logs and rule processing jobs.

Revision ID: 6f1c2a9d4e70
Revises:
Create Date: 2026-10-19 09:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '6f1c2a9d4e70'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'forms',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Unique form ID'),
        sa.Column('title', sa.String(length=255), nullable=False, comment='Form title shown to submitters'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('form_type', sa.String(length=50), nullable=False, comment='inquiry, booking, ...'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'form_sections',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('form_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_form_sections_form_id', 'form_sections', ['form_id'])

    op.create_table(
        'form_fields',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('section_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('options', JSON_TYPE, nullable=True),
        sa.Column('mapping', sa.String(length=100), nullable=True),
        sa.Column('stable_id', sa.String(length=255), nullable=True, comment='Rename-proof identifier used by email rules'),
        sa.Column('in_use_by_rules', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['section_id'], ['form_sections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_form_fields_section_id', 'form_fields', ['section_id'])
    op.create_index('ix_form_fields_stable_id', 'form_fields', ['stable_id'])

    op.create_table(
        'leads',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False, comment='new, contacted, booked, ...'),
        sa.Column('source', sa.String(length=100), nullable=True, comment='Where the lead came from, e.g. form:<id>'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_leads_email', 'leads', ['email'])

    op.create_table(
        'form_submissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('form_id', sa.Uuid(), nullable=False),
        sa.Column('lead_id', sa.Uuid(), nullable=True),
        sa.Column('data', JSON_TYPE, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('time_stamp', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_form_submissions_form_id', 'form_submissions', ['form_id'])
    op.create_index('ix_form_submissions_lead_id', 'form_submissions', ['lead_id'])

    op.create_table(
        'email_templates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('template_type', sa.String(length=50), nullable=False),
        sa.Column('subject', sa.String(length=500), nullable=False),
        sa.Column('html_content', sa.Text(), nullable=False),
        sa.Column('text_content', sa.Text(), nullable=True),
        sa.Column('cc_emails', sa.Text(), nullable=True),
        sa.Column('bcc_emails', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'email_rules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('form_id', sa.Uuid(), nullable=False),
        sa.Column('template_id', sa.Uuid(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('conditions', sa.Text(), nullable=False, comment='JSON list of conditions (implicit AND)'),
        sa.Column('recipient_type', sa.String(length=20), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=True),
        sa.Column('recipient_field', sa.String(length=255), nullable=True, comment='Stable id (or legacy id) of the recipient field'),
        sa.Column('cc_emails', sa.Text(), nullable=True),
        sa.Column('bcc_emails', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['template_id'], ['email_templates.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_email_rules_form_active', 'email_rules', ['form_id', 'active'])

    op.create_table(
        'email_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('correlation_id', sa.String(length=64), nullable=False, comment='Shared by every record of one pipeline run'),
        sa.Column('form_id', sa.Uuid(), nullable=True),
        sa.Column('submission_id', sa.Uuid(), nullable=True),
        sa.Column('rule_id', sa.Uuid(), nullable=True),
        sa.Column('template_id', sa.Uuid(), nullable=True),
        sa.Column('recipient', sa.String(length=255), nullable=True, comment='Null when no recipient could be resolved'),
        sa.Column('cc_recipients', sa.Text(), nullable=True),
        sa.Column('bcc_recipients', sa.Text(), nullable=True),
        sa.Column('subject', sa.String(length=500), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('error', sa.Text(), nullable=True),
        sa.Column('provider_message_id', sa.String(length=255), nullable=True),
        sa.Column('details', JSON_TYPE, nullable=True, comment='Unresolved placeholders and other diagnostics'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_email_logs_form_id', 'email_logs', ['form_id'])
    op.create_index('ix_email_logs_submission_id', 'email_logs', ['submission_id'])
    op.create_index('ix_email_logs_created_at', 'email_logs', ['created_at'])

    op.create_table(
        'email_rule_jobs',
        sa.Column('id', sa.Uuid(), nullable=False, comment='Unique job ID, also used as the pipeline correlation id'),
        sa.Column('form_id', sa.Uuid(), nullable=False),
        sa.Column('submission_id', sa.Uuid(), nullable=True, comment='Submission that triggered the run'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='Current status: pending, processing, completed, failed'),
        sa.Column('celery_task_id', sa.String(length=255), nullable=True, comment='Celery task ID for status polling fallback'),
        sa.Column('current_step', sa.String(length=50), nullable=True),
        sa.Column('processed_rule_count', sa.Integer(), nullable=True),
        sa.Column('queued_email_count', sa.Integer(), nullable=True),
        sa.Column('rule_outcomes', JSON_TYPE, nullable=True, comment='Per-rule outcome summary of the run'),
        sa.Column('error_message', sa.Text(), nullable=True, comment='Error details if status is failed'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['submission_id'], ['form_submissions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_email_rule_jobs_status', 'email_rule_jobs', ['status'])
    op.create_index('ix_email_rule_jobs_submission_id', 'email_rule_jobs', ['submission_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_email_rule_jobs_submission_id', table_name='email_rule_jobs')
    op.drop_index('ix_email_rule_jobs_status', table_name='email_rule_jobs')
    op.drop_table('email_rule_jobs')
    op.drop_index('ix_email_logs_created_at', table_name='email_logs')
    op.drop_index('ix_email_logs_submission_id', table_name='email_logs')
    op.drop_index('ix_email_logs_form_id', table_name='email_logs')
    op.drop_table('email_logs')
    op.drop_index('ix_email_rules_form_active', table_name='email_rules')
    op.drop_table('email_rules')
    op.drop_table('email_templates')
    op.drop_index('ix_form_submissions_lead_id', table_name='form_submissions')
    op.drop_index('ix_form_submissions_form_id', table_name='form_submissions')
    op.drop_table('form_submissions')
    op.drop_index('ix_leads_email', table_name='leads')
    op.drop_table('leads')
    op.drop_index('ix_form_fields_stable_id', table_name='form_fields')
    op.drop_index('ix_form_fields_section_id', table_name='form_fields')
    op.drop_table('form_fields')
    op.drop_index('ix_form_sections_form_id', table_name='form_sections')
    op.drop_table('form_sections')
    op.drop_table('forms')
