"""
Field resolver: stable ids and multi-identifier lookup for form fields.
"""

from .stable_ids import generate_stable_id, to_camel_case
from .resolver import (
    MISSING,
    FieldIndex,
    ResolvedField,
    candidate_keys,
    lookup_value,
    resolve_field,
)

__all__ = [
    "MISSING",
    "FieldIndex",
    "ResolvedField",
    "candidate_keys",
    "generate_stable_id",
    "lookup_value",
    "resolve_field",
    "to_camel_case",
]
