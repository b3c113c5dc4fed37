"""Root conftest.py for pytest configuration.

This file configures pytest for the entire project, ensuring:
- Tests run against in-memory SQLite and the console email transport
- Logfire is configured locally (nothing is sent)
- Shared fakes for the persistence and transport collaborators
"""

import os

# Must be set before config.settings is imported anywhere
os.environ.setdefault("DATABASE_DSN", "sqlite://")
os.environ.setdefault("EMAIL_TRANSPORT", "console")
os.environ.setdefault("ENVIRONMENT", "test")

import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

import logfire
import pytest

project_root = Path(__file__).parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from pipeline.models.core import (  # noqa: E402
    EmailLogRecord,
    FieldRecord,
    LeadRecord,
    RuleRecord,
    SubmissionRecord,
    TemplateRecord,
)
from services.email_transport import EmailMessage, TransportResult  # noqa: E402


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Register custom markers and configure logfire for the test run."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests requiring external services"
    )
    config.addinivalue_line(
        "markers",
        "unit: marks tests as unit tests (fast, no external dependencies)"
    )

    logfire.configure(
        service_name="bookingops_tests",
        environment="test",
        send_to_logfire=False,
        console=False,
    )


# ============================================================================
# Fakes
# ============================================================================

class FakeRuleRepository:
    """
    In-memory RuleRepository.

    Set `delay` (seconds) to make every call slow, or `fail_on` to a method
    name to make that method raise.
    """

    def __init__(self):
        self.rules: Dict[str, List[RuleRecord]] = {}
        self.fields: Dict[str, List[FieldRecord]] = {}
        self.submissions: Dict[str, SubmissionRecord] = {}
        self.leads: Dict[str, LeadRecord] = {}
        self.email_logs: List[EmailLogRecord] = []
        self.delay: Dict[str, float] = {}
        self.fail_on: Optional[str] = None

    def _maybe_stall(self, method: str) -> None:
        if self.fail_on == method:
            raise RuntimeError(f"{method} unavailable")
        if self.delay.get(method):
            time.sleep(self.delay[method])

    def get_active_rules_for_form(self, form_id: str) -> List[RuleRecord]:
        self._maybe_stall("get_active_rules_for_form")
        return [r for r in self.rules.get(form_id, []) if r.active]

    def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        self._maybe_stall("get_submission")
        return self.submissions.get(submission_id)

    def get_lead(self, lead_id: str) -> Optional[LeadRecord]:
        self._maybe_stall("get_lead")
        return self.leads.get(lead_id)

    def get_form_fields(self, form_id: str) -> List[FieldRecord]:
        self._maybe_stall("get_form_fields")
        return list(self.fields.get(form_id, []))

    def record_email_log(self, record: EmailLogRecord) -> str:
        self._maybe_stall("record_email_log")
        self.email_logs.append(record)
        return f"log-{len(self.email_logs)}"


class FakeTransport:
    """Records every message; fails for addresses listed in `reject`."""

    def __init__(self):
        self.sent: List[EmailMessage] = []
        self.reject: set = set()
        self.raise_error: Optional[Exception] = None

    async def send(self, message: EmailMessage) -> TransportResult:
        if self.raise_error is not None:
            raise self.raise_error
        if message.to in self.reject:
            return TransportResult(success=False, error=f"Recipient rejected: {message.to}")
        self.sent.append(message)
        return TransportResult(success=True, message_id=f"msg-{len(self.sent)}")


# ============================================================================
# Shared Fixtures
# ============================================================================

@pytest.fixture
def fake_repository():
    return FakeRuleRepository()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def make_template():
    def _make(**overrides) -> TemplateRecord:
        values = {
            "id": "tpl-1",
            "name": "Booking confirmed",
            "subject": "Thanks {{firstName}}",
            "html_content": "<p>Status: {{status}}</p>",
        }
        values.update(overrides)
        return TemplateRecord(**values)
    return _make


@pytest.fixture
def make_rule(make_template):
    """Build a RuleRecord; conditions may be given as a list and are JSON-encoded."""
    import json

    counter = {"n": 0}

    def _make(conditions=None, **overrides) -> RuleRecord:
        counter["n"] += 1
        if isinstance(conditions, (list, dict)):
            conditions = json.dumps(conditions)
        values = {
            "id": f"rule-{counter['n']}",
            "name": f"Rule {counter['n']}",
            "form_id": "form-1",
            "template_id": "tpl-1",
            "conditions": conditions,
            "template": make_template(),
        }
        values.update(overrides)
        return RuleRecord(**values)
    return _make


@pytest.fixture
def db_session():
    """SQLite session with every table created; dropped afterwards."""
    from database.base import Base, SessionLocal, engine
    import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
