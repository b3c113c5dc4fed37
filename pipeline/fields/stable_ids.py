"""
Stable id generation for form fields.

Rules reference fields by stable id so they survive a form save that
recreates every field row. Fields created before stable ids existed get one
synthesized here, deterministically from the field's properties.
"""

import re
from typing import Optional

from pipeline.models.core import FieldRecord

_SEPARATOR_THEN_CHAR = re.compile(r"[^a-zA-Z0-9]+(.)")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")

# Checked in order against the lower-cased label; first hit wins.
_LABEL_KEYWORDS = (
    (lambda label: "email" in label, "email"),
    (lambda label: "phone" in label or "tel" in label, "phone"),
    (lambda label: label in ("name", "full name"), "name"),
    (lambda label: "first name" in label, "firstName"),
    (lambda label: "last name" in label, "lastName"),
    (lambda label: "company" in label or "organization" in label, "company"),
    (lambda label: "address" in label, "address"),
    (lambda label: "city" in label, "city"),
    (lambda label: "state" in label or "province" in label, "state"),
    (lambda label: "zip" in label or "postal" in label, "zip"),
    (lambda label: "country" in label, "country"),
)

TYPE_KEYS = {
    "email": "email",
    "tel": "phone",
    "phone": "phone",
    "name": "name",
}


def to_camel_case(text: Optional[str]) -> str:
    """
    Convert free text to camelCase.

    >>> to_camel_case("Wedding Details")
    'weddingDetails'
    >>> to_camel_case("Venue name (if known)")
    'venueNameIfKnown'
    """
    if not text:
        return ""
    camel = _SEPARATOR_THEN_CHAR.sub(lambda m: m.group(1).upper(), text.lower())
    camel = _NON_ALNUM.sub("", camel)
    if camel[:1].isupper():
        camel = camel[0].lower() + camel[1:]
    return camel


def generate_stable_id(field: FieldRecord, section_title: Optional[str] = None) -> str:
    """
    Return the field's stable id, synthesizing one when it has none.

    Order: existing id, explicit mapping, semantic type, well-known label
    keywords, "{sectionCamel}_{labelCamel}", field name, "field_{id}".
    """
    if field.stable_id:
        return field.stable_id

    if field.mapping:
        return field.mapping

    type_key = TYPE_KEYS.get((field.field_type or "").lower())
    if type_key:
        return type_key

    if field.label:
        label = field.label.lower()
        for matches, key in _LABEL_KEYWORDS:
            if matches(label):
                return key

        stable_id = to_camel_case(field.label)
        section = section_title if section_title is not None else field.section_title
        if section:
            stable_id = f"{to_camel_case(section)}_{stable_id}"
        return stable_id

    if field.name:
        return field.name

    return f"field_{field.ephemeral_id}"
