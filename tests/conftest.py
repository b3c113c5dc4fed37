"""Fixtures for the database-backed and API tests."""

from datetime import datetime, timedelta, timezone

import pytest

from models import EmailRule, EmailTemplate, Form, FormField, FormSection, Lead


@pytest.fixture
def seeded_form(db_session):
    """
    A committed form with two sections, a template and a lead.

    The venue field predates stable ids, so its id is synthesized as
    weddingDetails_venueName.
    """
    form = Form(title="Wedding inquiry", form_type="inquiry")
    contact = FormSection(title="Contact", order=0)
    details = FormSection(title="Wedding Details", order=1)
    form.sections = [contact, details]

    contact.fields = [
        FormField(label="Full name", field_type="text", mapping="name", stable_id="name", order=0),
        FormField(label="Email", field_type="email", stable_id="email", order=1),
    ]
    details.fields = [
        FormField(label="Venue name", field_type="text", stable_id=None, order=0),
        FormField(
            label="Guest count",
            field_type="number",
            stable_id="weddingDetails_guestCount",
            order=1,
        ),
    ]

    template = EmailTemplate(
        name="Inquiry received",
        subject="Thanks {{firstName}}",
        html_content="<p>See you at {{weddingDetails_venueName}}</p>",
        cc_emails="studio@example.com",
    )
    lead = Lead(name="Dana Scully", email="dana@example.com", phone="555-0100")

    db_session.add_all([form, template, lead])
    db_session.commit()

    return {
        "form": form,
        "template": template,
        "lead": lead,
        "name_field": contact.fields[0],
        "email_field": contact.fields[1],
        "venue_field": details.fields[0],
        "guest_field": details.fields[1],
    }


@pytest.fixture
def add_rule(db_session, seeded_form):
    """Add a committed rule to the seeded form; created_at increases per call."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _add(conditions='[]', **overrides) -> EmailRule:
        counter["n"] += 1
        values = {
            "name": f"Rule {counter['n']}",
            "form_id": seeded_form["form"].id,
            "template_id": seeded_form["template"].id,
            "conditions": conditions,
            "created_at": base + timedelta(minutes=counter["n"]),
        }
        values.update(overrides)
        rule = EmailRule(**values)
        db_session.add(rule)
        db_session.commit()
        return rule

    return _add
