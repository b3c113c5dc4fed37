"""
Submission intake helpers: contact extraction and lead linking.

The intake route stores the submission, links it to a lead and enqueues the
rule job; these helpers keep the lead logic out of the route.
"""

from typing import Any, Dict, Iterable, Optional
from uuid import UUID

import logfire
from sqlalchemy.orm import Session

from models import Lead
from pipeline.fields import FieldIndex, ResolvedField, lookup_value, MISSING

CONTACT_KEYS = ("name", "email", "phone")


def _contact_key(resolved: ResolvedField) -> Optional[str]:
    for candidate in (resolved.mapping, resolved.type_key):
        if candidate and candidate.lower() in CONTACT_KEYS:
            return candidate.lower()
    return None


def extract_contact(data: Dict[str, Any], fields: Iterable[ResolvedField]) -> Dict[str, str]:
    """
    Pull name/email/phone out of a submission payload.

    Fields mapped (or typed) as contact fields are looked up first; plain
    "name"/"email"/"phone" keys in the payload fill whatever is left.
    """
    index = FieldIndex(fields)
    contact: Dict[str, str] = {}

    for resolved in index.fields:
        key = _contact_key(resolved)
        if key is None or key in contact:
            continue
        value = lookup_value(resolved.stable_id, data, index)
        if value is not MISSING and value not in (None, ""):
            contact[key] = str(value).strip()

    for key in CONTACT_KEYS:
        if key not in contact and data.get(key):
            contact[key] = str(data[key]).strip()

    return contact


def link_lead(
    db: Session,
    form_id: UUID,
    contact: Dict[str, str],
    lead_id: Optional[UUID] = None,
) -> Optional[Lead]:
    """
    Return the lead for this submission, creating one when needed.

    An explicit lead_id wins. Otherwise an existing lead with the same email
    is reused. A new lead is only created when at least an email is known.
    """
    if lead_id is not None:
        lead = db.get(Lead, lead_id)
        if lead is not None:
            return lead
        logfire.warning("Requested lead does not exist", lead_id=str(lead_id))

    email = contact.get("email")
    if not email:
        return None

    lead = db.query(Lead).filter(Lead.email == email).order_by(Lead.created_at.asc()).first()
    if lead is not None:
        if not lead.phone and contact.get("phone"):
            lead.phone = contact["phone"]
        if not lead.name and contact.get("name"):
            lead.name = contact["name"]
        return lead

    lead = Lead(
        name=contact.get("name"),
        email=email,
        phone=contact.get("phone"),
        source=f"form:{form_id}",
    )
    db.add(lead)
    db.flush()
    logfire.info("Lead created from submission", lead_id=str(lead.id), form_id=str(form_id))
    return lead
