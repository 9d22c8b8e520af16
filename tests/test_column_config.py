"""
tests.test_column_config
~~~~~~~~~~~~~~~~~~~~~~~~
Unit tests for the pure column configuration services.  No database access.

Covers:
- Column model            (with_option, wire format, availability hints)
- ConstraintEngine        (required / nullable rules)
- ColumnStore             (mutation entry point, derived state)
- DiffEngine              (structural diff, atomic sequences)
- PatchBuilder            (name-keyed change-sets)
- ChangeSetValidationService
- Inspector registry
- EditSession             (save / discard against a fake collaborator)
"""
from __future__ import annotations

import pytest

from apps.column_config.services.change_set_validator import (
    ChangeSetValidationRequest,
    ChangeSetValidationService,
)
from apps.column_config.services.column_model import (
    ALL_VIEWS,
    Column,
    FieldType,
    InvalidOptionValueError,
    InvalidPathError,
    display_label,
    option_available,
    unavailable_options,
    with_option,
)
from apps.column_config.services.column_store import (
    ColumnNotFoundError,
    ColumnStore,
    DuplicateColumnError,
)
from apps.column_config.services.constraint_engine import ConstraintEngine
from apps.column_config.services.diff_engine import AlignmentError, DiffEngine
from apps.column_config.services.edit_session import (
    EditSession,
    SaveFailedError,
    SaveResult,
)
from apps.column_config.services.inspectors import NoOpInspector, inspector_registry
from apps.column_config.services.patch_builder import PatchBuilder


# ===========================================================================
# Shared columns
# ===========================================================================

def make_columns() -> list[Column]:
    """The two-column table used throughout: ``id`` and ``email``."""
    return [
        Column.from_dict({
            "name": "id",
            "fieldType": "Id",
            "baseOptions": {"required": True, "nullable": False},
        }),
        Column.from_dict({
            "name": "email",
            "fieldType": "Text",
            "label": "E-mail",
            "baseOptions": {"required": False, "nullable": False, "nullValues": []},
        }),
    ]


def make_textarea() -> Column:
    return Column.from_dict({
        "name": "bio",
        "fieldType": "Textarea",
        "fieldOptions": {"rows": 5, "wrap": True},
    })


def make_non_nullable_source() -> Column:
    return Column.from_dict({
        "name": "created_at",
        "fieldType": "DateTime",
        "dataSourceInfo": {"nullable": False},
    })


# ===========================================================================
# TestColumnModel
# ===========================================================================

class TestColumnModel:
    """Unit tests for the Column dataclasses and with_option."""

    def test_wire_round_trip_keeps_defaults(self):
        column = make_columns()[1]
        data = column.to_dict()
        assert data["fieldType"] == "Text"
        assert data["baseOptions"]["visibility"] == list(ALL_VIEWS)
        assert data["baseOptions"]["nullValues"] == []
        assert data["dataSourceInfo"] == {"nullable": True}
        assert Column.from_dict(data) == column

    def test_with_option_returns_new_column(self):
        column = make_columns()[1]
        updated = with_option(column, "baseOptions.label", "Email address")
        assert updated is not column
        assert updated.base_options.label == "Email address"
        assert column.base_options.label == ""

    def test_with_option_shares_untouched_fields(self):
        column = make_textarea()
        updated = with_option(column, "baseOptions.help", "A short bio")
        assert updated.field_options is column.field_options
        assert updated.data_source_info is column.data_source_info

    def test_top_level_field_type(self):
        updated = with_option(make_columns()[1], "fieldType", "Textarea")
        assert updated.field_type is FieldType.TEXTAREA

    def test_unknown_field_type_value_rejected(self):
        with pytest.raises(InvalidOptionValueError):
            with_option(make_columns()[1], "fieldType", "Spreadsheet")

    def test_field_options_accept_any_key(self):
        updated = with_option(make_textarea(), "fieldOptions.maxLength", 200)
        assert updated.field_options == {"rows": 5, "wrap": True, "maxLength": 200}

    def test_field_options_replaced_whole(self):
        bag = {"rows": 3}
        updated = with_option(make_textarea(), "fieldOptions", bag)
        assert updated.field_options == {"rows": 3}
        bag["rows"] = 99
        assert updated.field_options == {"rows": 3}

    def test_field_options_whole_value_must_be_mapping(self):
        with pytest.raises(InvalidOptionValueError):
            with_option(make_textarea(), "fieldOptions", ["rows", 3])

    @pytest.mark.parametrize("path, value", [
        ("baseOptions.required", 1),
        ("baseOptions.nullable", "true"),
        ("baseOptions.disconnected", None),
        ("baseOptions.label", 5),
        ("baseOptions.placeholder", None),
        ("baseOptions.defaultValue", False),
        ("baseOptions.visibility", 3),
        ("label", ["E-mail"]),
    ])
    def test_wrongly_typed_values_rejected(self, path, value):
        with pytest.raises(InvalidOptionValueError):
            with_option(make_columns()[1], path, value)

    def test_label_may_be_cleared(self):
        assert with_option(make_columns()[1], "label", None).label is None

    @pytest.mark.parametrize("path", [
        "",
        "name",
        "baseOptions",
        "dataSourceInfo.nullable",
        "baseOptions.bogus",
        "bogus",
        "otherOptions.label",
        "baseOptions.label.extra",
        "baseOptions.",
    ])
    def test_invalid_paths_rejected(self, path):
        with pytest.raises(InvalidPathError):
            with_option(make_columns()[1], path, "x")

    def test_sequence_options_are_ordered_sets(self):
        updated = with_option(make_columns()[1], "baseOptions.visibility", ["show", "index", "show"])
        assert updated.base_options.visibility == ("show", "index")

    def test_sequence_option_rejects_string(self):
        with pytest.raises(InvalidOptionValueError):
            with_option(make_columns()[1], "baseOptions.nullValues", "null")

    def test_display_label_precedence(self):
        email = make_columns()[1]
        assert display_label(email) == "E-mail"
        assert display_label(with_option(email, "baseOptions.label", "Mail")) == "Mail"
        assert display_label(make_columns()[0]) == "id"

    def test_option_availability(self):
        created_at = make_non_nullable_source()
        assert option_available(created_at, "baseOptions.nullable") is False
        assert option_available(created_at, "baseOptions.defaultValue") is False
        assert option_available(make_columns()[1], "baseOptions.nullable") is True

        disconnected = with_option(make_columns()[1], "baseOptions.disconnected", True)
        assert unavailable_options(disconnected) == ["baseOptions.visibility"]


# ===========================================================================
# TestConstraintEngine
# ===========================================================================

class TestConstraintEngine:
    """Unit tests for the required/nullable rules."""

    def _apply(self, column: Column, path: str, value) -> Column:
        return ConstraintEngine.apply(with_option(column, path, value), path, value)

    def test_required_true_forces_nullable_false(self):
        nullable = self._apply(make_columns()[1], "baseOptions.nullable", True)
        result = self._apply(nullable, "baseOptions.required", True)
        assert result.base_options.required is True
        assert result.base_options.nullable is False
        # nullValues are left alone
        assert result.base_options.null_values == ("",)

    def test_nullable_true_forces_required_false_and_seeds_null_values(self):
        required = self._apply(make_columns()[1], "baseOptions.required", True)
        result = self._apply(required, "baseOptions.nullable", True)
        assert result.base_options.nullable is True
        assert result.base_options.required is False
        assert result.base_options.null_values == ("",)

    def test_nullable_true_keeps_existing_null_values(self):
        column = with_option(make_columns()[1], "baseOptions.nullValues", ["null", "0"])
        result = self._apply(column, "baseOptions.nullable", True)
        assert result.base_options.null_values == ("null", "0")

    def test_setting_false_fires_nothing(self):
        column = make_columns()[0]
        proposed = with_option(column, "baseOptions.nullable", False)
        assert ConstraintEngine.apply(proposed, "baseOptions.nullable", False) is proposed

        proposed = with_option(column, "baseOptions.required", False)
        result = ConstraintEngine.apply(proposed, "baseOptions.required", False)
        assert result.base_options.nullable is False
        assert result.base_options.null_values == ()

    def test_unrelated_path_fires_nothing(self):
        proposed = with_option(make_columns()[1], "baseOptions.label", "x")
        assert ConstraintEngine.apply(proposed, "baseOptions.label", "x") is proposed


# ===========================================================================
# TestColumnStore
# ===========================================================================

class TestColumnStore:
    """Unit tests for the single mutation entry point and derived state."""

    def test_required_mutation_clears_nullable(self):
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.nullable", True)
        store.mutate("email", "baseOptions.required", True)
        assert store.get("email").base_options.nullable is False

    def test_nullable_mutation_seeds_null_values(self):
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.nullable", True)
        email = store.get("email")
        assert email.base_options.null_values == ("",)
        assert email.base_options.required is False

    def test_mutation_replaces_at_same_index(self):
        store = ColumnStore(make_columns())
        working = store.mutate("email", "baseOptions.label", "Mail")
        assert [c.name for c in working] == ["id", "email"]
        assert working[0] is store.baseline[0]
        assert store.baseline[1].base_options.label == ""

    def test_unknown_name_raises(self):
        store = ColumnStore(make_columns())
        with pytest.raises(ColumnNotFoundError):
            store.mutate("phone", "baseOptions.required", True)
        with pytest.raises(ColumnNotFoundError):
            store.get("phone")

    def test_invalid_path_commits_nothing(self):
        store = ColumnStore(make_columns())
        before = store.snapshot()
        with pytest.raises(InvalidPathError):
            store.mutate("email", "name", "mail")
        assert store.snapshot() is before
        assert store.is_dirty is False

    @pytest.mark.parametrize("value", [1, "true"])
    def test_truthy_non_bool_never_bypasses_rules(self, value):
        """Only a real ``True`` may turn ``required`` on; nothing is committed otherwise."""
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.nullable", True)
        before = store.snapshot()

        with pytest.raises(InvalidOptionValueError):
            store.mutate("email", "baseOptions.required", value)

        assert store.snapshot() is before
        email = store.get("email").base_options
        assert (email.required, email.nullable) == (False, True)

    def test_duplicate_names_rejected(self):
        columns = make_columns()
        with pytest.raises(DuplicateColumnError):
            ColumnStore(columns + [columns[0]])

    def test_clean_store_is_not_dirty(self):
        store = ColumnStore(make_columns())
        assert store.diff() == {}
        assert store.changes() == {}
        assert store.is_dirty is False

    def test_reverting_an_edit_clears_dirty_state(self):
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.placeholder", "you@example.com")
        assert store.is_dirty is True
        store.mutate("email", "baseOptions.placeholder", "")
        assert store.is_dirty is False

    def test_discard_restores_baseline(self):
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.disconnected", True)
        store.discard()
        assert store.snapshot() == store.baseline
        assert store.is_dirty is False

    def test_diff_result_is_a_copy(self):
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.label", "Mail")
        first = store.diff()
        first[1]["baseOptions"]["label"] = "tampered"
        assert store.diff()[1]["baseOptions"]["label"] == "Mail"

    def test_email_nullable_scenario(self):
        """Setting email nullable yields exactly one patch keyed by name."""
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.nullable", True)

        email = store.get("email").base_options
        assert (email.required, email.nullable, email.null_values) == (False, True, ("",))
        assert store.is_dirty is True
        assert store.changes() == {
            "email": {
                "baseOptions": {
                    "nullable": True,
                    "nullValues": [""],
                    "visibility": list(ALL_VIEWS),
                },
            },
        }
        assert "id" not in store.changes()


# ===========================================================================
# TestDiffEngine
# ===========================================================================

class TestDiffEngine:
    """Unit tests for the structural differ."""

    def test_identical_sequences_have_empty_diff(self):
        columns = make_columns()
        assert DiffEngine.diff(columns, columns) == {}
        assert DiffEngine.diff(columns, make_columns()) == {}

    def test_length_mismatch_raises(self):
        columns = make_columns()
        with pytest.raises(AlignmentError):
            DiffEngine.diff(columns, columns[:1])

    def test_only_changed_leaves_reported(self):
        baseline = make_columns()
        working = [baseline[0], with_option(baseline[1], "baseOptions.help", "Work address")]
        assert DiffEngine.diff(baseline, working) == {1: {"baseOptions": {"help": "Work address"}}}

    def test_visibility_change_is_whole_value(self):
        baseline = make_columns()
        working = [with_option(baseline[0], "baseOptions.visibility", ["index", "show", "edit"]), baseline[1]]
        assert DiffEngine.diff(baseline, working) == {
            0: {"baseOptions": {"visibility": ["index", "show", "edit"]}},
        }

    def test_null_values_change_is_whole_value(self):
        baseline = [with_option(make_columns()[1], "baseOptions.nullValues", ["", "null"])]
        working = [with_option(baseline[0], "baseOptions.nullValues", ["", "null", "0"])]
        assert DiffEngine.diff(baseline, working) == {
            0: {"baseOptions": {"nullValues": ["", "null", "0"]}},
        }

    def test_field_options_recursed_and_removed_keys_reported(self):
        from dataclasses import replace

        baseline = [make_textarea()]
        working = [replace(baseline[0], field_options={"rows": 8, "theme": {"mono": True}})]
        assert DiffEngine.diff(baseline, working) == {
            0: {"fieldOptions": {"rows": 8, "theme": {"mono": True}, "wrap": None}},
        }

    def test_bool_to_int_is_a_change(self):
        from dataclasses import replace

        baseline = [make_textarea()]
        working = [replace(baseline[0], field_options={"rows": 5, "wrap": 1})]
        assert DiffEngine.diff(baseline, working) == {0: {"fieldOptions": {"wrap": 1}}}


# ===========================================================================
# TestPatchBuilder
# ===========================================================================

class TestPatchBuilder:
    """Unit tests for change-set construction and merging."""

    def test_change_confined_to_one_column_yields_one_key(self):
        baseline = make_columns()
        working = [baseline[0], with_option(baseline[1], "baseOptions.placeholder", "you@x.io")]
        change_set = PatchBuilder.build_change_set(DiffEngine.diff(baseline, working), working)
        assert list(change_set) == ["email"]

    def test_visibility_always_forced_in_full(self):
        baseline = make_columns()
        working = [baseline[0], with_option(baseline[1], "baseOptions.visibility", ["show", "edit"])]
        change_set = PatchBuilder.build_change_set(DiffEngine.diff(baseline, working), working)
        assert change_set["email"]["baseOptions"] == {"visibility": ["show", "edit"]}

    def test_field_options_sent_whole_when_touched(self):
        baseline = [make_textarea()]
        working = [with_option(baseline[0], "fieldOptions.rows", 10)]
        change_set = PatchBuilder.build_change_set(DiffEngine.diff(baseline, working), working)
        assert change_set == {
            "bio": {
                "fieldOptions": {"rows": 10, "wrap": True},
                "baseOptions": {"visibility": list(ALL_VIEWS)},
            },
        }

    def test_field_options_absent_when_untouched(self):
        baseline = [make_textarea()]
        working = [with_option(baseline[0], "baseOptions.label", "Biography")]
        change_set = PatchBuilder.build_change_set(DiffEngine.diff(baseline, working), working)
        assert "fieldOptions" not in change_set["bio"]

    def test_out_of_range_index_dropped(self):
        working = make_columns()
        assert PatchBuilder.build_change_set({5: {"label": "x"}}, working) == {}

    def test_build_is_idempotent(self):
        baseline = make_columns()
        working = [
            with_option(baseline[0], "baseOptions.visibility", ["index"]),
            with_option(baseline[1], "fieldType", "Textarea"),
        ]
        first = PatchBuilder.build_change_set(DiffEngine.diff(baseline, working), working)
        second = PatchBuilder.build_change_set(DiffEngine.diff(baseline, working), working)
        assert first == second
        assert first is not second

    def test_is_dirty(self):
        baseline = make_columns()
        assert PatchBuilder.is_dirty(baseline, baseline) is False
        working = [baseline[0], with_option(baseline[1], "label", "Mail")]
        assert PatchBuilder.is_dirty(baseline, working) is True

    def test_apply_change_set_merges_options(self):
        baseline = [make_textarea()] + make_columns()
        change_set = {
            "bio": {"fieldOptions": {"rows": 2}, "baseOptions": {"visibility": ["show"]}},
            "email": {"baseOptions": {"help": "Work address", "visibility": list(ALL_VIEWS)}},
            "ghost": {"label": "ignored"},
        }
        merged = PatchBuilder.apply_change_set(baseline, change_set)
        assert [c.name for c in merged] == ["bio", "id", "email"]
        assert merged[0].field_options == {"rows": 2}
        assert merged[0].base_options.visibility == ("show",)
        assert merged[1] is baseline[1]
        assert merged[2].base_options.help == "Work address"


# ===========================================================================
# TestChangeSetValidation
# ===========================================================================

class TestChangeSetValidation:
    """Unit tests for ChangeSetValidationService."""

    def _validate(self, changes: dict, columns: list[Column] | None = None):
        columns = columns if columns is not None else make_columns() + [make_non_nullable_source()]
        return ChangeSetValidationService.validate(
            ChangeSetValidationRequest(columns=columns, changes=changes)
        )

    def _codes(self, result) -> set[str]:
        return {e["code"] for e in result.errors}

    def test_built_change_set_passes(self):
        store = ColumnStore(make_columns())
        store.mutate("email", "baseOptions.nullable", True)
        result = self._validate(store.changes())
        assert result.valid is True
        assert result.errors == []

    def test_unknown_column(self):
        result = self._validate({"phone": {"label": "Phone"}})
        assert result.valid is False
        assert result.errors[0]["column"] == "phone"
        assert self._codes(result) == {"unknown_column"}

    def test_immutable_fields(self):
        result = self._validate({"email": {"name": "mail", "dataSourceInfo": {"nullable": False}}})
        assert [e["code"] for e in result.errors] == ["immutable_field", "immutable_field"]

    def test_unknown_options(self):
        result = self._validate({"email": {"colour": "red", "baseOptions": {"bold": True}}})
        assert self._codes(result) == {"unknown_option"}
        assert {e["field"] for e in result.errors} == {"colour", "baseOptions.bold"}

    def test_type_mismatches(self):
        result = self._validate({"email": {
            "fieldType": "Spreadsheet",
            "baseOptions": {"required": "yes", "help": 3, "nullValues": "null"},
        }})
        assert self._codes(result) == {"type_mismatch"}
        assert len(result.errors) == 4

    def test_invalid_patch_shapes(self):
        result = self._validate({"email": ["not", "a", "dict"], "id": {"baseOptions": "x"}})
        assert self._codes(result) == {"invalid_patch"}
        assert len(result.errors) == 2

    def test_unknown_visibility_flag(self):
        result = self._validate({"email": {"baseOptions": {"visibility": ["index", "print"]}}})
        assert self._codes(result) == {"invalid_visibility"}

    def test_unsupported_null_value(self):
        result = self._validate({"email": {"baseOptions": {
            "nullable": True, "nullValues": ["", "NaN"],
        }}})
        assert self._codes(result) == {"invalid_null_values"}
        assert "NaN" in result.errors[0]["message"]

    def test_required_and_nullable_together(self):
        result = self._validate({"email": {"baseOptions": {
            "required": True, "nullable": True, "nullValues": [""],
        }}})
        assert self._codes(result) == {"constraint_violation"}

    def test_nullable_without_null_values(self):
        result = self._validate({"email": {"baseOptions": {"nullable": True}}})
        assert self._codes(result) == {"constraint_violation"}
        assert result.errors[0]["field"] == "baseOptions.nullValues"

    def test_nullable_on_non_nullable_source(self):
        result = self._validate({"created_at": {"baseOptions": {
            "nullable": True, "nullValues": [""], "visibility": list(ALL_VIEWS),
        }}})
        assert result.valid is False
        assert result.errors == [{
            "column": "created_at",
            "field": "baseOptions.nullable",
            "code": "nullable_unsupported",
            "message": result.errors[0]["message"],
        }]

    def test_all_errors_collected_across_columns(self):
        result = self._validate({
            "phone": {},
            "email": {"baseOptions": {"visibility": ["nowhere"]}},
            "created_at": {"baseOptions": {"nullable": True, "nullValues": ["0"]}},
        })
        assert self._codes(result) == {"unknown_column", "invalid_visibility", "nullable_unsupported"}


# ===========================================================================
# TestInspectorRegistry
# ===========================================================================

class TestInspectorRegistry:
    """Unit tests for the static inspector registry."""

    def test_registered_inspector_describes_current_values(self):
        column = make_textarea()
        fragment = inspector_registry.get(column.field_type).describe(column)
        assert fragment["fieldType"] == "Textarea"
        assert fragment["options"][0]["path"] == "fieldOptions.rows"
        assert fragment["options"][0]["value"] == 5

    def test_defaults_used_when_option_missing(self):
        column = Column.from_dict({"name": "status", "fieldType": "Select"})
        inspector = inspector_registry.get("Select")
        assert inspector.default_field_options() == {"options": ""}
        values = {o["path"]: o["value"] for o in inspector.describe(column)["options"]}
        assert values == {"fieldOptions.options": ""}

    @pytest.mark.parametrize("field_type", [FieldType.TEXT, "Gravatar", "Json", "Spreadsheet", None])
    def test_unregistered_types_fall_back_to_no_op(self, field_type):
        inspector = inspector_registry.get(field_type)
        assert isinstance(inspector, NoOpInspector)
        assert inspector.describe(make_columns()[1])["options"] == []


# ===========================================================================
# TestEditSession
# ===========================================================================

class FakePersistence:
    """In-memory collaborator that records every update it receives."""

    def __init__(self, columns: list[Column], reject: bool = False) -> None:
        self.columns = list(columns)
        self.reject = reject
        self.calls: list[dict] = []

    def load_columns(self) -> list[Column]:
        return list(self.columns)

    def update_columns(self, changes: dict) -> SaveResult:
        self.calls.append(changes)
        if self.reject:
            return SaveResult(ok=False, errors=[{
                "column": name, "field": "", "code": "rejected", "message": "no",
            } for name in changes])
        self.columns = PatchBuilder.apply_change_set(self.columns, changes)
        return SaveResult(ok=True)


class TestEditSession:
    """Unit tests for the save / discard lifecycle."""

    def test_save_without_changes_sends_nothing(self):
        persistence = FakePersistence(make_columns())
        session = EditSession(persistence)
        assert session.save() == {}
        assert persistence.calls == []

    def test_successful_save_rebases(self):
        persistence = FakePersistence(make_columns())
        session = EditSession(persistence)
        session.mutate("email", "baseOptions.nullable", True)

        saved = session.save()
        assert list(saved) == ["email"]
        assert persistence.calls == [saved]
        assert session.is_dirty is False
        assert session.store.baseline[1].base_options.nullable is True

    def test_failed_save_preserves_working_state(self):
        persistence = FakePersistence(make_columns(), reject=True)
        session = EditSession(persistence)
        working = session.mutate("email", "baseOptions.required", True)

        with pytest.raises(SaveFailedError) as exc_info:
            session.save()
        assert exc_info.value.errors[0]["column"] == "email"
        assert "email" in str(exc_info.value)
        assert session.columns is working
        assert session.is_dirty is True
        assert len(persistence.calls) == 1

    def test_discard_and_reload(self):
        persistence = FakePersistence(make_columns())
        session = EditSession(persistence)
        session.mutate("email", "label", "Mail")
        session.discard()
        assert session.is_dirty is False

        persistence.columns = [with_option(c, "baseOptions.help", "?") for c in persistence.columns]
        columns = session.reload()
        assert all(c.base_options.help == "?" for c in columns)
