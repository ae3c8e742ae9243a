"""
Unit tests for column type detection.
"""
import pytest

from csvhub.services.type_sniffer import DataType, detect_column_type, detect_data_type, infer_column_types


class TestDetectDataType:
    """Test single value type detection."""

    @pytest.mark.parametrize("value,expected", [
        ("", DataType.EMPTY),
        ("   ", DataType.EMPTY),
        ("true", DataType.BOOLEAN),
        ("FALSE", DataType.BOOLEAN),
        ("jane@example.com", DataType.EMAIL),
        ("https://example.com/path", DataType.URL),
        ("2024-12-15", DataType.DATE),
        ("12/15/2024", DataType.DATE),
        ("1/5/2024", DataType.DATE),
        ("42", DataType.NUMBER),
        ("-3.5", DataType.NUMBER),
        ("1e3", DataType.NUMBER),
        ("Paella", DataType.STRING),
    ])
    def test_value_types(self, value, expected):
        assert detect_data_type(value) == expected

    def test_impossible_date_is_not_date(self):
        """Date-shaped strings that are not real dates fall through."""
        assert detect_data_type("2024-13-45") != DataType.DATE


class TestDetectColumnType:
    """Test column level type detection."""

    def test_uniform_column(self):
        info = detect_column_type(["1", "2", "3.5"], column="amount")

        assert info.column == "amount"
        assert info.type == DataType.NUMBER
        assert info.confidence == 1.0
        assert info.sample_values == ["1", "2", "3.5"]

    def test_empty_values_ignored(self):
        info = detect_column_type(["a@x.com", "", "b@x.com"])
        assert info.type == DataType.EMAIL
        assert info.confidence == 1.0

    def test_below_threshold_is_mixed(self):
        info = detect_column_type(["1", "2", "three", "four"])
        assert info.type == DataType.MIXED
        assert info.confidence == 0.5

    def test_all_empty_column(self):
        info = detect_column_type(["", " "])
        assert info.type == DataType.STRING
        assert info.confidence == 0.0


class TestInferColumnTypes:
    """Test type detection across rows."""

    def test_columns_in_header_order(self):
        rows = [
            {"name": "Ann", "joined": "2024-01-02", "active": "true"},
            {"name": "Bob", "joined": "2024-02-03", "active": "false"},
        ]
        types = infer_column_types(rows, columns=["name", "joined", "active"])

        assert [t.column for t in types] == ["name", "joined", "active"]
        assert [t.type for t in types] == [DataType.STRING, DataType.DATE, DataType.BOOLEAN]

    def test_no_rows(self):
        assert infer_column_types([]) == []
