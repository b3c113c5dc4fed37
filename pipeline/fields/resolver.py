"""
Field resolution: from whatever identifier a rule stored to a form field.

Rules written at different times reference fields by stable id, ephemeral id,
explicit mapping or camel-cased label. FieldIndex tries an ordered list of
lookup strategies and the first hit wins.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pipeline.models.core import FieldRecord
from .stable_ids import TYPE_KEYS, generate_stable_id, to_camel_case

MISSING = object()


@dataclass(frozen=True)
class ResolvedField:
    """A form field with a guaranteed stable id."""

    ephemeral_id: str
    stable_id: str
    label: str
    field_type: str
    options: List[Dict[str, Any]] = field(default_factory=list)
    mapping: Optional[str] = None
    name: Optional[str] = None
    section_title: Optional[str] = None
    stable_id_synthesized: bool = False

    @property
    def camel_label(self) -> str:
        return to_camel_case(self.label)

    @property
    def type_key(self) -> Optional[str]:
        return TYPE_KEYS.get((self.field_type or "").lower())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ephemeralId": self.ephemeral_id,
            "stableId": self.stable_id,
            "label": self.label,
            "type": self.field_type,
            "options": self.options,
            "mapping": self.mapping,
        }


def resolve_field(record: FieldRecord) -> ResolvedField:
    stable_id = generate_stable_id(record)
    return ResolvedField(
        ephemeral_id=str(record.ephemeral_id),
        stable_id=stable_id,
        label=record.label or "",
        field_type=record.field_type or "text",
        options=list(record.options or []),
        mapping=record.mapping,
        name=record.name,
        section_title=record.section_title,
        stable_id_synthesized=not record.stable_id,
    )


def candidate_keys(resolved: ResolvedField) -> List[str]:
    """
    Context keys under which a field's value may appear, most specific first.
    """
    keys: List[str] = []
    for key in (
        resolved.stable_id,
        resolved.ephemeral_id,
        resolved.mapping,
        resolved.camel_label,
        resolved.type_key,
    ):
        if key and key not in keys:
            keys.append(key)
    return keys


Strategy = Callable[[str], Optional[ResolvedField]]


class FieldIndex:
    """
    Lookup of a form's fields by any identifier a rule may have stored.

    Strategies, in order: stable id, ephemeral id, explicit mapping
    (case-insensitive), camel-cased label.
    """

    def __init__(self, fields: Iterable[ResolvedField] = ()):
        self.fields: List[ResolvedField] = list(fields)

        # First field wins on duplicate keys, matching form order
        self._by_stable_id: Dict[str, ResolvedField] = {}
        self._by_ephemeral_id: Dict[str, ResolvedField] = {}
        self._by_mapping: Dict[str, ResolvedField] = {}
        self._by_camel_label: Dict[str, ResolvedField] = {}
        for f in self.fields:
            self._by_stable_id.setdefault(f.stable_id, f)
            self._by_ephemeral_id.setdefault(f.ephemeral_id, f)
            if f.mapping:
                self._by_mapping.setdefault(f.mapping.lower(), f)
            if f.camel_label:
                self._by_camel_label.setdefault(f.camel_label, f)

        self.strategies: List[Tuple[str, Strategy]] = [
            ("stable_id", self._by_stable_id.get),
            ("ephemeral_id", self._by_ephemeral_id.get),
            ("mapping", lambda ref: self._by_mapping.get(ref.lower())),
            ("camel_label", lambda ref: self._by_camel_label.get(ref) or self._by_camel_label.get(to_camel_case(ref))),
        ]

    @classmethod
    def from_records(cls, records: Iterable[FieldRecord]) -> "FieldIndex":
        return cls(resolve_field(r) for r in records)

    def __len__(self) -> int:
        return len(self.fields)

    def resolve(self, reference: Optional[str]) -> Optional[ResolvedField]:
        """Return the field a reference points at, or None."""
        if not reference:
            return None
        for _, strategy in self.strategies:
            found = strategy(reference)
            if found is not None:
                return found
        return None

    def resolve_with_strategy(self, reference: Optional[str]) -> Tuple[Optional[ResolvedField], Optional[str]]:
        """Like resolve(), also naming the strategy that matched (for diagnostics)."""
        if not reference:
            return None, None
        for name, strategy in self.strategies:
            found = strategy(reference)
            if found is not None:
                return found, name
        return None, None

    def lookup_value(self, reference: str, context: Mapping[str, Any]) -> Any:
        """
        Find a field's value in the context.

        Tries the reference as a direct key, then every candidate key of the
        field it resolves to. A key present with a None value counts as
        present. Returns MISSING when nothing is found.
        """
        return lookup_value(reference, context, self)


def lookup_value(reference: str, context: Mapping[str, Any], field_index: Optional[FieldIndex] = None) -> Any:
    """Module-level form of FieldIndex.lookup_value; works without an index."""
    if reference in context:
        return context[reference]
    if field_index is None:
        return MISSING
    resolved = field_index.resolve(reference)
    if resolved is None:
        return MISSING
    for key in candidate_keys(resolved):
        if key in context:
            return context[key]
    return MISSING
