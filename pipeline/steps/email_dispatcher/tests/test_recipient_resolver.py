"""
Tests for recipient resolution and cc/bcc handling.
"""

import pytest

from pipeline.fields import FieldIndex
from pipeline.models.core import FieldRecord
from pipeline.steps.email_dispatcher.recipient_resolver import resolve_recipient
from pipeline.steps.email_dispatcher.utils import effective_copies, parse_email_list


def test_form_recipient_is_submitter(make_rule):
    rule = make_rule(recipient_type="form")
    assert resolve_recipient(rule, {"email": "c@d.com"}) == "c@d.com"


def test_form_recipient_missing_email(make_rule):
    rule = make_rule(recipient_type="form")
    assert resolve_recipient(rule, {"email": "   "}) is None
    assert resolve_recipient(rule, {}) is None


def test_custom_recipient_is_verbatim(make_rule):
    rule = make_rule(recipient_type="custom", recipient_email="owner@venue.com")
    assert resolve_recipient(rule, {"email": "c@d.com"}) == "owner@venue.com"


def test_custom_recipient_blank_is_no_recipient(make_rule):
    rule = make_rule(recipient_type="custom", recipient_email="  ")
    assert resolve_recipient(rule, {"email": "c@d.com"}) is None


def test_field_recipient(make_rule):
    rule = make_rule(recipient_type="field", recipient_field="notifyEmail")
    assert resolve_recipient(rule, {"notifyEmail": "planner@x.com", "email": "a@b.com"}) == "planner@x.com"


def test_field_recipient_falls_back_to_submitter(make_rule):
    rule = make_rule(recipient_type="field", recipient_field="notifyEmail")
    assert resolve_recipient(rule, {"email": "a@b.com"}) == "a@b.com"
    assert resolve_recipient(rule, {"notifyEmail": "", "email": "a@b.com"}) == "a@b.com"


def test_field_recipient_through_old_ephemeral_id(make_rule):
    index = FieldIndex.from_records([
        FieldRecord(ephemeral_id="old-uuid", label="Planner email", stable_id="plannerEmail"),
    ])
    rule = make_rule(recipient_type="field", recipient_field="old-uuid")
    assert resolve_recipient(rule, {"plannerEmail": "p@x.com"}, index) == "p@x.com"


def test_unknown_recipient_type_uses_submitter(make_rule):
    rule = make_rule(recipient_type="team")
    assert resolve_recipient(rule, {"email": "a@b.com"}) == "a@b.com"


@pytest.mark.parametrize("raw, expected", [
    (None, []),
    ("", []),
    ("a@x.com", ["a@x.com"]),
    ("a@x.com, b@x.com;; a@x.com", ["a@x.com", "b@x.com"]),
])
def test_parse_email_list(raw, expected):
    assert parse_email_list(raw) == expected


def test_rule_copies_override_template(make_rule, make_template):
    template = make_template(cc_emails="tpl-cc@x.com", bcc_emails="tpl-bcc@x.com")
    rule = make_rule(template=template, cc_emails="rule-cc@x.com")
    assert effective_copies(rule) == (["rule-cc@x.com"], ["tpl-bcc@x.com"])
