"""
Option reconciliation against the live schema.

Covers:
    - reconcile(): saved order first, new live options appended, obsolete kept
    - reconcile_field(): schema lookup, vanished field
    - is_value_current() / option_status() / stale_references()
    - SchemaAccessor helpers used by the workflow editor
"""

from dealflow.services.option_reconciler import (
    is_value_current,
    option_status,
    reconcile,
    reconcile_field,
    stale_references,
)
from dealflow.services.schema_accessor import StaticSchemaAccessor
from dealflow.services.workflow_types import (
    ConfigStatus,
    OptionStatus,
    SelectOption,
)


def _values(merged):
    return [(m.value, m.status) for m in merged]


class TestReconcile:
    def test_drift_in_both_directions(self):
        live = [SelectOption("x", "X"), SelectOption("y", "Y")]
        merged = reconcile(live, ["y", "z"])
        assert _values(merged) == [
            ("y", OptionStatus.CURRENT),
            ("z", OptionStatus.OBSOLETE),
            ("x", OptionStatus.NEW),
        ]

    def test_current_option_takes_live_label_and_color(self):
        live = [SelectOption("won", "Won", "#22c55e")]
        [merged] = reconcile(live, ["won"])
        assert merged.label == "Won"
        assert merged.color == "#22c55e"

    def test_obsolete_option_label_falls_back_to_value(self):
        [merged] = reconcile([], ["archived"])
        assert merged.label == "archived"
        assert merged.color is None
        assert merged.status is OptionStatus.OBSOLETE

    def test_empty_saved_order_marks_everything_new(self):
        live = [SelectOption("a", "A"), SelectOption("b", "B")]
        assert _values(reconcile(live, [])) == [
            ("a", OptionStatus.NEW),
            ("b", OptionStatus.NEW),
        ]

    def test_both_empty(self):
        assert reconcile([], []) == []

    def test_saved_order_is_preserved_over_schema_order(self):
        live = [SelectOption("a", "A"), SelectOption("b", "B"), SelectOption("c", "C")]
        merged = reconcile(live, ["c", "a", "b"])
        assert [m.value for m in merged] == ["c", "a", "b"]
        assert all(m.status is OptionStatus.CURRENT for m in merged)

    def test_repeated_saved_value_appears_once(self):
        live = [SelectOption("a", "A")]
        merged = reconcile(live, ["a", "a", "gone", "gone"])
        assert [m.value for m in merged] == ["a", "gone"]

    def test_to_dict_uses_plain_status_string(self):
        [merged] = reconcile([SelectOption("a", "A", "#fff")], [])
        assert merged.to_dict() == {"value": "a", "label": "A", "status": "new", "color": "#fff"}


class TestReconcileField:
    def test_reads_live_options_from_schema(self, stage_schema):
        merged = reconcile_field(stage_schema, "stage", ["proposal", "negotiation"])
        assert _values(merged) == [
            ("proposal", OptionStatus.CURRENT),
            ("negotiation", OptionStatus.OBSOLETE),
            ("prospecting", OptionStatus.NEW),
            ("closing", OptionStatus.NEW),
        ]

    def test_vanished_field_makes_every_saved_value_obsolete(self, stage_schema):
        merged = reconcile_field(stage_schema, "pipeline", ["a", "b"])
        assert _values(merged) == [
            ("a", OptionStatus.OBSOLETE),
            ("b", OptionStatus.OBSOLETE),
        ]

    def test_non_select_field_has_no_live_options(self, stage_schema):
        merged = reconcile_field(stage_schema, "value", ["1"])
        assert _values(merged) == [("1", OptionStatus.OBSOLETE)]


class TestOptionChecks:
    def test_is_value_current(self, stage_schema):
        assert is_value_current(stage_schema, "stage", "proposal") is True
        assert is_value_current(stage_schema, "stage", "negotiation") is False
        assert is_value_current(stage_schema, "missing", "proposal") is False

    def test_is_value_current_uses_keyed_lookup(self, stage_schema):
        class _NoScan(StaticSchemaAccessor):
            def list_fields(self):
                raise AssertionError("full schema scan")

        schema = _NoScan(stage_schema.list_fields())
        assert is_value_current(schema, "stage", "closing") is True
        assert is_value_current(schema, "value", "1") is False
        assert schema.get_select_field("stage").key == "stage"

    def test_option_status_configured(self, stage_schema):
        status = option_status(stage_schema, "stage", "proposal", ["prospecting", "proposal"])
        assert status is ConfigStatus.CONFIGURED

    def test_option_status_not_configured(self, stage_schema):
        status = option_status(stage_schema, "stage", "closing", ["prospecting"])
        assert status is ConfigStatus.NOT_CONFIGURED
        assert status.value == "not-configured"

    def test_obsolete_wins_over_configured(self, stage_schema):
        status = option_status(stage_schema, "stage", "negotiation", ["negotiation"])
        assert status is ConfigStatus.OBSOLETE

    def test_stale_references_keeps_input_order_once(self, stage_schema):
        stale = stale_references(
            stage_schema, "stage", ["lost", "proposal", "won", "lost"],
        )
        assert stale == ["lost", "won"]

    def test_stale_references_on_unknown_field(self, stage_schema):
        assert stale_references(stage_schema, "pipeline", ["a"]) == ["a"]


class TestSchemaAccessor:
    def test_editable_field_keys_skip_technical_and_readonly(self, stage_schema):
        assert stage_schema.editable_field_keys() == ["name", "stage", "value", "ownerId"]

    def test_editable_field_keys_custom_exclusion(self, stage_schema):
        keys = stage_schema.editable_field_keys(excluding={"stage"})
        assert "stage" not in keys
        assert "name" in keys

    def test_field_name_falls_back_to_key(self, stage_schema):
        assert stage_schema.field_name("value") == "Value"
        assert stage_schema.field_name("deletedField") == "deletedField"

    def test_option_label(self, stage_schema):
        assert stage_schema.option_label("stage", "closing") == "Closing"
        assert stage_schema.option_label("stage", "unknown") == "unknown"

    def test_select_fields_need_options(self):
        schema = StaticSchemaAccessor.from_columns([
            {"field_key": "stage", "field_type": "select",
             "options": [{"value": "a", "label": "A"}]},
            {"field_key": "empty", "field_type": "select", "options": []},
            {"field_key": "notes", "field_type": "text"},
        ])
        assert [f.key for f in schema.list_select_fields()] == ["stage"]
        assert schema.get_select_field("empty") is None
        assert schema.get_field("empty").label == "empty"
