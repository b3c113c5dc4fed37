"""
Test suite for Rule Selector Step

Parsing of stored condition JSON (every historical shape) and rule ordering.

Run with:
    pytest pipeline/steps/rule_selector/tests -v
"""

import json
from datetime import datetime, timezone

import pytest

from pipeline.core.exceptions import ConditionParseError, StepExecutionError
from pipeline.models.core import RuleProcessingData
from pipeline.steps.rule_selector import RuleSelectorStep
from pipeline.steps.rule_selector.utils import (
    is_empty_conditions,
    order_rules,
    parse_conditions,
    select_rule,
    serialize_conditions,
)


# ===================================================================
# TESTS - Empty shapes
# ===================================================================

@pytest.mark.parametrize("raw", [None, "", "  ", "null", "[]", "{}", [], {}, " [] "])
def test_empty_shapes_mean_no_conditions(raw):
    assert is_empty_conditions(raw) is True
    assert parse_conditions(raw) == []


def test_non_empty_is_not_empty():
    assert is_empty_conditions('[{"field": "a", "operator": "equals"}]') is False


# ===================================================================
# TESTS - Parsing
# ===================================================================

def test_parse_plain_conditions():
    raw = json.dumps([{"field": "status", "operator": "equals", "value": "confirmed"}])
    [condition] = parse_conditions(raw)
    assert condition.field == "status"
    assert condition.operator == "equals"
    assert condition.value == "confirmed"
    assert condition.alternates == ()


def test_parse_prefers_stable_id_and_keeps_alternates():
    raw = [{"fieldId": "old-uuid", "stableId": "eventDetails_date", "operator": "isNotEmpty", "fieldLabel": "Date"}]
    [condition] = parse_conditions(raw)
    assert condition.field == "eventDetails_date"
    assert condition.alternates == ("old-uuid",)
    assert condition.label == "Date"
    assert condition.references == ("eventDetails_date", "old-uuid", "Date")


def test_parse_skips_blank_field_stable_id():
    raw = json.dumps([{
        "field": "status",
        "fieldId": "f-1",
        "fieldStableId": "",
        "fieldLabel": "Status",
        "operator": "equals",
        "value": "confirmed",
    }])
    [condition] = parse_conditions(raw)
    assert condition.field == "status"
    assert condition.alternates == ("f-1",)
    assert condition.label == "Status"


def test_parse_skips_null_stable_id():
    raw = [{"stableId": None, "fieldStableId": " venue_name ", "field": "f-2", "label": "", "operator": "isNotEmpty"}]
    [condition] = parse_conditions(raw)
    assert condition.field == "venue_name"
    assert condition.alternates == ("f-2",)
    assert condition.label is None


def test_parse_rejects_condition_with_only_blank_references():
    with pytest.raises(ConditionParseError):
        parse_conditions([{"stableId": None, "fieldStableId": "", "field": "  ", "operator": "equals"}])


def test_parse_coerces_values_to_strings():
    raw = [
        {"field": "guests", "operator": "greaterThan", "value": 100},
        {"field": "vip", "operator": "equals", "value": True},
        {"field": "notes", "operator": "isEmpty"},
    ]
    values = [c.value for c in parse_conditions(raw)]
    assert values == ["100", "true", ""]


def test_parse_numeric_field_reference():
    [condition] = parse_conditions([{"field": 42, "operator": "equals", "value": "x"}])
    assert condition.field == "42"


@pytest.mark.parametrize("raw", [
    "{not json",
    '{"field": "a", "operator": "equals"}',
    '"just a string"',
    '[1, 2]',
    '[{"operator": "equals", "value": "x"}]',
    '[{"field": "status"}]',
    '[{"field": "", "operator": "equals"}]',
])
def test_malformed_conditions_raise(raw):
    with pytest.raises(ConditionParseError):
        parse_conditions(raw)


def test_serialize_writes_field_and_stable_id():
    conditions = parse_conditions([{"fieldId": "old", "stableId": "new", "operator": "equals", "value": "x"}])
    payload = json.loads(serialize_conditions(conditions))
    assert payload == [{"field": "new", "stableId": "new", "operator": "equals", "value": "x"}]
    assert parse_conditions(serialize_conditions(conditions))[0].field == "new"


def test_serialize_drops_alternate_references():
    conditions = parse_conditions([{"field": "venue", "fieldId": "f-7", "operator": "equals", "value": "x"}])
    assert conditions[0].alternates == ("f-7",)

    [reparsed] = parse_conditions(serialize_conditions(conditions))

    assert reparsed.field == "venue"
    assert reparsed.alternates == ()


# ===================================================================
# TESTS - Selection and ordering
# ===================================================================

def test_select_rule_records_parse_error(make_rule):
    selected = select_rule(make_rule("[{oops"))
    assert selected.parse_error is not None
    assert selected.conditions == []


def test_order_puts_conditioned_rules_first(make_rule):
    empty_first = select_rule(make_rule("[]"))
    conditioned = select_rule(make_rule([{"field": "a", "operator": "equals", "value": "1"}]))
    empty_second = select_rule(make_rule(None))
    invalid = select_rule(make_rule("{broken"))

    ordered = order_rules([empty_first, conditioned, empty_second, invalid])

    assert [s.rule.id for s in ordered] == [
        conditioned.rule.id,
        invalid.rule.id,
        empty_first.rule.id,
        empty_second.rule.id,
    ]


def test_order_uses_creation_time_within_each_group(make_rule):
    conditions = [{"field": "a", "operator": "equals", "value": "1"}]
    newer = select_rule(make_rule(conditions, created_at=datetime(2025, 2, 1, tzinfo=timezone.utc)))
    older = select_rule(make_rule(conditions, created_at=datetime(2025, 1, 1)))
    unconditioned_old = select_rule(make_rule("[]", created_at=datetime(2024, 6, 1, tzinfo=timezone.utc)))
    undated = select_rule(make_rule(conditions))

    ordered = order_rules([unconditioned_old, newer, older, undated])

    assert [s.rule.id for s in ordered] == [
        undated.rule.id,
        older.rule.id,
        newer.rule.id,
        unconditioned_old.rule.id,
    ]


# ===================================================================
# TESTS - Step
# ===================================================================

@pytest.mark.asyncio
async def test_step_loads_active_rules(fake_repository, make_rule):
    active = make_rule([{"field": "status", "operator": "equals", "value": "confirmed"}])
    inactive = make_rule([{"field": "status", "operator": "equals", "value": "x"}], active=False)
    fake_repository.rules["form-1"] = [inactive, active]

    data = RuleProcessingData(correlation_id="run-1", form_id="form-1")
    result = await RuleSelectorStep(fake_repository).execute(data)

    assert result.success is True
    assert [s.rule.id for s in data.rules] == [active.id]
    assert "Found 1 active email rules" in [entry.message for entry in data.logs]


@pytest.mark.asyncio
async def test_step_logs_parse_errors(fake_repository, make_rule):
    broken = make_rule("not json at all")
    fake_repository.rules["form-1"] = [broken]

    data = RuleProcessingData(correlation_id="run-1", form_id="form-1")
    await RuleSelectorStep(fake_repository).execute(data)

    assert data.rules[0].parse_error
    assert any(entry.rule_id == broken.id and entry.level.value == "error" for entry in data.logs)


@pytest.mark.asyncio
async def test_step_load_failure_is_fatal(fake_repository):
    fake_repository.fail_on = "get_active_rules_for_form"
    data = RuleProcessingData(correlation_id="run-1", form_id="form-1")

    with pytest.raises(StepExecutionError) as exc_info:
        await RuleSelectorStep(fake_repository).execute(data)

    assert exc_info.value.step_name == "rule_selector"
    assert "Could not load rules" in str(exc_info.value)


@pytest.mark.asyncio
async def test_step_load_timeout_is_fatal(fake_repository):
    fake_repository.delay["get_active_rules_for_form"] = 0.5
    data = RuleProcessingData(correlation_id="run-1", form_id="form-1")

    with pytest.raises(StepExecutionError) as exc_info:
        await RuleSelectorStep(fake_repository, timeout=0.05).execute(data)

    assert "Timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_step_requires_form_id(fake_repository):
    data = RuleProcessingData(correlation_id="run-1", form_id="")

    with pytest.raises(StepExecutionError) as exc_info:
        await RuleSelectorStep(fake_repository).execute(data)

    assert "form_id is required" in str(exc_info.value)
    assert data.rules == []
