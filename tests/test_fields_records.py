from __future__ import annotations

import logging

import pytest

from csvdiff.compare import Comparison, FieldComparator, plan_fields
from csvdiff.errors import KeyExtractionError, SchemaMismatchError
from csvdiff.fields import ByIndex, ByName, Schema, parse_field_ref, parse_field_spec
from csvdiff.matching import match
from csvdiff.records import KeySpec, build_records


def test_parse_field_spec_mixes_names_and_indexes() -> None:
    assert parse_field_spec("id, 2,:2019") == (ByName("id"), ByIndex(2), ByName("2019"))
    assert parse_field_spec(["name", 0]) == (ByName("name"), ByIndex(0))
    assert parse_field_spec(None) == ()
    assert parse_field_spec("") == ()


def test_parse_field_ref_rejects_booleans() -> None:
    with pytest.raises(TypeError):
        parse_field_ref(True)


def test_schema_resolve_reports_available_fields() -> None:
    schema = Schema(("id", "name"))

    assert schema.resolve(ByName("name")) == 1
    assert schema.resolve(ByIndex(0)) == 0
    with pytest.raises(KeyExtractionError) as excinfo:
        schema.resolve(ByIndex(2), role="parent")
    assert excinfo.value.role == "parent"
    assert "id, name" in str(excinfo.value)


def test_schema_rejects_duplicate_names() -> None:
    with pytest.raises(ValueError):
        Schema(("a", "a"))


def test_key_spec_requires_a_key_style() -> None:
    with pytest.raises(ValueError):
        KeySpec()
    with pytest.raises(ValueError):
        KeySpec.from_options(key_fields="id", child_fields="line")


def test_key_fields_derive_parent_from_leading_fields() -> None:
    schema = Schema(("order", "line", "qty"))
    bound = KeySpec.from_options(key_fields="order,line").bind(schema)

    assert bound.key_names == ("order", "line")
    assert bound.parent_names == ("order",)


def test_build_records_pads_short_rows_and_extracts_keys() -> None:
    schema = Schema(("order", "line", "qty"))
    records = build_records(
        [("A", "1", "5"), ("A", "2")],
        schema,
        KeySpec.from_options(parent_fields="order", child_fields="line"),
    )

    assert [record.key for record in records] == [("A", "1"), ("A", "2")]
    assert [record.parent_key for record in records] == [("A",), ("A",)]
    assert records[1].get("qty") == ""
    assert records[0].as_dict() == {"order": "A", "line": "1", "qty": "5"}
    assert records[0].get("missing") is None


def test_build_records_drops_extra_values_and_logs(caplog) -> None:
    schema = Schema(("id", "name"))
    spec = KeySpec.from_options(key_fields="id")

    with caplog.at_level(logging.DEBUG, logger="csvdiff.records"):
        (record,) = build_records([("1", "Ann", "extra")], schema, spec)

    assert record.values == ("1", "Ann")
    assert "has 3 values but the schema names 2 fields" in caplog.text


def test_comparator_normalisation() -> None:
    strict = FieldComparator()
    relaxed = FieldComparator(ignore_case=True, trim_whitespace=True)

    assert strict.compare(" Straße", "STRASSE") is Comparison.DIFFERENT
    assert relaxed.compare(" Straße", "STRASSE") is Comparison.EQUAL
    assert strict.compare("01", "1") is Comparison.DIFFERENT
    assert relaxed.normalise_key(("  A ", "b")) == ("a", "b")


def test_plan_fields_orders_compared_fields_by_from_schema() -> None:
    left = Schema(("id", "name", "city"))
    right = Schema(("city", "id", "name"))

    plan = plan_fields(left, right, ignore_fields=parse_field_spec("city"))

    assert plan.compared == ("id", "name")
    assert plan.output == ("id", "name")
    assert plan.ignored == ("city",)


def test_plan_fields_reports_one_sided_fields() -> None:
    left = Schema(("id", "legacy"))
    right = Schema(("id", "email"))

    with pytest.raises(SchemaMismatchError) as excinfo:
        plan_fields(left, right)
    assert excinfo.value.left_only == ["legacy"]
    assert "--diff-common-fields-only" in str(excinfo.value)

    plan = plan_fields(left, right, diff_common_fields_only=True)
    assert plan.compared == ("id",)
    assert plan.left_only == ("legacy",)
    assert plan.right_only == ("email",)


def test_plan_fields_rejects_unknown_output_field() -> None:
    schema = Schema(("id", "name"))

    with pytest.raises(KeyExtractionError) as excinfo:
        plan_fields(schema, schema, output_fields=parse_field_spec("nickname"))
    assert excinfo.value.role == "output"


def test_match_partitions_in_source_order() -> None:
    schema = Schema(("id", "value"))
    spec = KeySpec.from_options(key_fields="id")
    left = build_records([("3", "c"), ("1", "a"), ("2", "b"), ("1", "dup")], schema, spec)
    right = build_records([("5", "e"), ("2", "b"), ("4", "d"), ("3", "c")], schema, spec)

    result = match(left, right, FieldComparator())

    assert [record.key for record in result.added] == [("5",), ("4",)]
    assert [record.key for record in result.deleted] == [("1",)]
    assert result.deleted[0].get("value") == "a"
    assert [pair[0].key for pair in result.matched] == [("3",), ("2",)]
    assert result.left_duplicates == (("1",),)
    assert [str(warning) for warning in result.warnings] == [
        "Duplicate key '1' seen 2 times in FROM; first occurrence used"
    ]


def test_duplicate_keys_keep_first_seen_spelling() -> None:
    schema = Schema(("id", "value"))
    spec = KeySpec.from_options(key_fields="id")
    left = build_records([("A", "1"), ("a", "2")], schema, spec)
    right = build_records([("a", "1")], schema, spec)

    result = match(left, right, FieldComparator(ignore_case=True))

    assert result.left_duplicates == (("A",),)
    assert result.right_duplicates == ()
    assert [str(warning) for warning in result.warnings] == [
        "Duplicate key 'A' seen 2 times in FROM; first occurrence used"
    ]
