"""
Transition validation for governed select fields.

Rules, in order: no process / self-transition allowed, transition graph,
then entry requirements of the target option.
"""

import pytest

from dealflow.services.transition_validator import (
    can_change_select_field,
    collect_missing_fields,
    is_missing,
    validate_exit_from_stage,
    validate_transition,
)
from dealflow.services.workflow_types import (
    BlockReason,
    MissingField,
    Process,
    ProcessTransition,
)


def _sales(transitions=(("prospecting", "proposal"),), requirements=None, **kw):
    return Process(
        id=kw.pop("id", "p1"),
        name="Sales",
        select_field_key="stage",
        enabled=kw.pop("enabled", True),
        is_active=kw.pop("is_active", True),
        transitions=[ProcessTransition(a, b) for a, b in transitions],
        stage_requirements=requirements if requirements is not None else {"proposal": ["value"]},
    )


# ═════════════════════════════════════════════════════════════════════════════
# Empty-value rule
# ═════════════════════════════════════════════════════════════════════════════


class TestIsMissing:
    @pytest.mark.parametrize("value", [None, "", "   ", [], ()])
    def test_missing(self, value):
        assert is_missing(value) is True

    @pytest.mark.parametrize("value", [0, 0.0, False, True, "x", ["a"], {"k": 1}, {}, set(), 42])
    def test_present(self, value):
        assert is_missing(value) is False

    def test_collect_missing_fields_dedupes_and_keeps_order(self, stage_schema):
        missing = collect_missing_fields(
            ["value", "name", "value", "ownerId"],
            {"name": "Acme"},
            stage_schema,
        )
        assert missing == [
            MissingField("value", "Value"),
            MissingField("ownerId", "Owner"),
        ]

    def test_collect_missing_fields_without_schema_uses_keys(self):
        assert collect_missing_fields(["value"], {}) == [MissingField("value", "value")]


# ═════════════════════════════════════════════════════════════════════════════
# validate_transition
# ═════════════════════════════════════════════════════════════════════════════


class TestValidateTransition:
    def test_absent_requirement_blocks(self):
        result = validate_transition(_sales(), "prospecting", "proposal", {})
        assert result.can_move is False
        assert result.blocked_by is BlockReason.REQUIREMENTS
        assert result.missing_fields == [MissingField("value", "value")]

    def test_zero_counts_as_filled(self):
        result = validate_transition(_sales(), "prospecting", "proposal", {"value": 0})
        assert result.can_move is True
        assert result.missing_fields == []
        assert result.message is None

    def test_false_counts_as_filled(self):
        proc = _sales(requirements={"proposal": ["approved"]})
        result = validate_transition(proc, "prospecting", "proposal", {"approved": False})
        assert result.can_move is True

    def test_empty_mapping_counts_as_filled(self):
        proc = _sales(requirements={"proposal": ["meta"]})
        result = validate_transition(proc, "prospecting", "proposal", {"meta": {}})
        assert result.can_move is True
        assert result.missing_fields == []

    def test_empty_list_is_missing(self):
        proc = _sales(requirements={"proposal": ["tags"]})
        result = validate_transition(proc, "prospecting", "proposal", {"tags": []})
        assert result.missing_fields == [MissingField("tags", "tags")]

    def test_illegal_pair_blocks_without_missing_fields(self):
        proc = _sales(transitions=[("a", "b")], requirements={"c": ["value"]})
        result = validate_transition(proc, "a", "c", {})
        assert result.can_move is False
        assert result.missing_fields == []
        assert result.blocked_by is BlockReason.TRANSITION
        assert '"a"' in result.message and '"c"' in result.message

    def test_transition_check_runs_before_requirements(self, stage_schema):
        proc = _sales(requirements={"closing": ["value"]})
        result = validate_transition(proc, "prospecting", "closing", {}, stage_schema)
        assert result.blocked_by is BlockReason.TRANSITION
        assert result.message == 'Transition not allowed: "Prospecting" -> "Closing"'

    def test_transitions_are_directed(self):
        proc = _sales(requirements={})
        assert validate_transition(proc, "proposal", "prospecting", {}).can_move is False

    def test_self_transition_always_allowed(self):
        proc = _sales(transitions=[("a", "b")], requirements={"a": ["value"]})
        result = validate_transition(proc, "a", "a", {})
        assert result.can_move is True
        assert result.missing_fields == []

    def test_no_process_allows_everything(self):
        result = validate_transition(None, "anything", "else", {})
        assert result.can_move is True
        assert result.missing_fields == []
        assert result.message is None

    def test_empty_transition_list_allows_any_pair(self):
        proc = _sales(transitions=(), requirements={})
        assert validate_transition(proc, "prospecting", "closing", {}).can_move is True

    def test_empty_transitions_still_check_requirements(self):
        proc = _sales(transitions=(), requirements={"closing": ["value"]})
        result = validate_transition(proc, "prospecting", "closing", {})
        assert result.can_move is False
        assert result.blocked_by is BlockReason.REQUIREMENTS

    def test_all_missing_fields_reported_with_schema_names(self, stage_schema):
        proc = _sales(requirements={"proposal": ["value", "ownerId", "name"]})
        result = validate_transition(
            proc, "prospecting", "proposal", {"name": "Acme", "ownerId": "  "}, stage_schema,
        )
        assert [m.field_key for m in result.missing_fields] == ["value", "ownerId"]
        assert result.message == '2 required field(s) missing to enter "Proposal": Value, Owner'

    def test_deleted_field_reported_under_raw_key(self, stage_schema):
        proc = _sales(requirements={"proposal": ["legacyBudget"]})
        result = validate_transition(proc, "prospecting", "proposal", {}, stage_schema)
        assert result.missing_fields == [MissingField("legacyBudget", "legacyBudget")]

    def test_obsolete_option_in_transition_is_matched_verbatim(self, stage_schema):
        proc = _sales(transitions=[("prospecting", "negotiation")], requirements={})
        result = validate_transition(proc, "prospecting", "negotiation", {}, stage_schema)
        assert result.can_move is True

    @pytest.mark.parametrize("from_value,to_value", [(None, "a"), ("a", None)])
    def test_none_value_is_a_caller_error(self, from_value, to_value):
        with pytest.raises(ValueError):
            validate_transition(_sales(), from_value, to_value, {})

    def test_result_to_dict(self):
        result = validate_transition(_sales(), "prospecting", "proposal", {})
        data = result.to_dict()
        assert data["can_move"] is False
        assert data["missing_fields"] == [{"field_key": "value", "field_name": "value"}]
        assert data["blocked_by"] == "requirements"


# ═════════════════════════════════════════════════════════════════════════════
# validate_exit_from_stage
# ═════════════════════════════════════════════════════════════════════════════


class TestValidateExit:
    def test_exit_requirements_use_current_value(self, stage_schema):
        proc = _sales(requirements={"prospecting": ["ownerId"]})
        result = validate_exit_from_stage(proc, "prospecting", {}, stage_schema)
        assert result.can_move is False
        assert result.missing_fields == [MissingField("ownerId", "Owner")]
        assert result.message == 'Cannot leave "Prospecting". Required fields: Owner'

    def test_exit_allowed_when_filled(self):
        proc = _sales(requirements={"prospecting": ["ownerId"]})
        assert validate_exit_from_stage(proc, "prospecting", {"ownerId": "u1"}).can_move is True

    def test_exit_without_process(self):
        assert validate_exit_from_stage(None, "prospecting", {}).can_move is True

    def test_exit_none_value_raises(self):
        with pytest.raises(ValueError):
            validate_exit_from_stage(_sales(), None, {})


# ═════════════════════════════════════════════════════════════════════════════
# can_change_select_field
# ═════════════════════════════════════════════════════════════════════════════


class TestCanChangeSelectField:
    def test_resolves_governing_process(self):
        processes = [_sales(id="inactive", is_active=False, requirements={}), _sales()]
        result = can_change_select_field(processes, "stage", "prospecting", "proposal", {})
        assert result.can_move is False
        assert result.blocked_by is BlockReason.REQUIREMENTS

    def test_ungoverned_field_is_free(self):
        result = can_change_select_field([_sales()], "origin", "inbound", "event", {})
        assert result.can_move is True

    def test_first_of_ambiguous_processes_is_used(self):
        strict = _sales(id="strict", transitions=[("a", "b")], requirements={})
        loose = _sales(id="loose", transitions=(), requirements={})
        assert can_change_select_field([strict, loose], "stage", "a", "c", {}).can_move is False
        assert can_change_select_field([loose, strict], "stage", "a", "c", {}).can_move is True

    def test_enforcement_disabled_allows_everything(self):
        result = can_change_select_field(
            [_sales()], "stage", "prospecting", "closing", {}, enforcement_enabled=False,
        )
        assert result.can_move is True

    def test_none_value_raises_even_when_disabled(self):
        with pytest.raises(ValueError):
            can_change_select_field([], "stage", None, "a", {}, enforcement_enabled=False)
