"""Unit tests for models module."""

import datetime as dt

import pytest

from mysqldiff.errors import MissingRequiredField, UnknownFeature
from mysqldiff.models import (
    PRIMARY_KEY_NAME,
    ColumnDescription,
    IndexDescription,
    SchemaDescription,
    SchemaDiff,
    SqlFeature,
    StringDiff,
    TableDdl,
    TableDescription,
    TableMissingDiff,
    parse_features,
)


class TestDescriptions:
    """Tests for parser output types."""

    def test_specs_are_stored_as_tuples(self) -> None:
        """Test list input is frozen into a tuple."""
        col = ColumnDescription("id", "INT", ["NOT", "NULL"], "id INT NOT NULL")
        assert col.specs == ("NOT", "NULL")
        assert hash(col) == hash(ColumnDescription("id", "INT", ("NOT", "NULL"), "id INT NOT NULL"))

    def test_instances_are_immutable(self) -> None:
        """Test fields cannot be reassigned."""
        col = ColumnDescription("id", "INT", (), "id INT")
        with pytest.raises(AttributeError):
            col.name = "other"  # type: ignore[misc]

    def test_primary_key_name_is_forced(self) -> None:
        """Test any PRIMARY KEY index is renamed to the sentinel."""
        idx = IndexDescription("whatever", "PRIMARY KEY", ("(", "id", ")"), "PRIMARY KEY (id)")
        assert idx.name == PRIMARY_KEY_NAME

    def test_other_index_name_is_kept(self) -> None:
        """Test non-primary indexes keep their name."""
        idx = IndexDescription("idx_a", "KEY", ("(", "a", ")"), "KEY idx_a (a)")
        assert idx.name == "idx_a"

    def test_table_names(self) -> None:
        """Test table_names follows snapshot order."""
        tables = [TableDescription(n, [ColumnDescription("id", "INT", (), "id INT")], [], [], "") for n in ("b", "a")]
        schema = SchemaDescription(tables, dt.datetime(2024, 1, 1))
        assert schema.table_names() == ("b", "a")
        assert isinstance(schema.tables, tuple)


class TestDiffTypes:
    """Tests for engine output types."""

    def test_string_diff_requires_one_side(self) -> None:
        """Test a StringDiff with both sides absent is rejected."""
        with pytest.raises(MissingRequiredField):
            StringDiff(None, None)

    def test_string_diff_one_side(self) -> None:
        """Test a one-sided StringDiff is valid."""
        assert StringDiff(None, "KEY a (a)").right == "KEY a (a)"

    def test_table_missing_diff_requires_one_side(self) -> None:
        """Test a TableMissingDiff with both sides absent is rejected."""
        with pytest.raises(MissingRequiredField):
            TableMissingDiff(None, None)

    def test_table_missing_diff_left_only(self) -> None:
        """Test a left-only TableMissingDiff is valid."""
        m = TableMissingDiff(TableDdl("a", "CREATE TABLE a (id INT)"), None)
        assert m.left.name == "a"

    def test_schema_diff_is_empty(self) -> None:
        """Test is_empty reflects both lists."""
        now = dt.datetime(2024, 1, 1)
        assert SchemaDiff((), (), now).is_empty()
        assert not SchemaDiff((TableMissingDiff(None, TableDdl("c", "")),), (), now).is_empty()


class TestParseFeatures:
    """Tests for parse_features function."""

    def test_none_is_empty(self) -> None:
        """Test None means no ignores."""
        assert parse_features(None) == frozenset()

    def test_comma_separated_string(self) -> None:
        """Test a comma-separated string with blanks and mixed case."""
        assert parse_features(" Comment, ROW_FORMAT ") == {SqlFeature.COMMENT, SqlFeature.ROW_FORMAT}

    def test_empty_items_are_skipped(self) -> None:
        """Test empty entries are ignored."""
        assert parse_features("comment,,") == {SqlFeature.COMMENT}

    def test_members_and_names(self) -> None:
        """Test an iterable mixing members and names."""
        assert parse_features([SqlFeature.AUTO_INCREMENT_ID, "index_storage_type"]) == {
            SqlFeature.AUTO_INCREMENT_ID,
            SqlFeature.INDEX_STORAGE_TYPE,
        }

    def test_unknown_feature(self) -> None:
        """Test an unknown name raises UnknownFeature listing the choices."""
        with pytest.raises(UnknownFeature, match="possible values are") as excinfo:
            parse_features("comment,charset")
        assert excinfo.value.value == "charset"

    def test_choices(self) -> None:
        """Test choices lists every feature value."""
        assert SqlFeature.choices() == "comment, index_storage_type, auto_increment_id, row_format"
