"""
Unit tests for CSV parser service.

Tests decoding, header handling, ragged rows, empty row reporting,
line numbering, very long cells and the fatal empty-file cases.
"""
import csv

import pytest

from csvhub.core.exceptions import CSVParsingError
from csvhub.services import csv_parser
from csvhub.services.csv_parser import (
    ALL_ROWS_EMPTY_MESSAGE,
    EMPTY_FILE_MESSAGE,
    EMPTY_ROW_MESSAGE,
    HEADER_ONLY_MESSAGE,
    CSVParser,
)


class TestParseRows:
    """Test turning lines into header-keyed rows."""

    def test_basic_file(self):
        """Each data line becomes a row keyed by the header."""
        result = CSVParser().parse_csv(b"name,age\nAlice,30\nBob,25\n")

        assert result.headers == ["name", "age"]
        assert result.rows == [
            {"name": "Alice", "age": "30"},
            {"name": "Bob", "age": "25"},
        ]
        assert result.errors == []
        assert result.line_numbers == [2, 3]

    def test_values_and_headers_are_trimmed(self):
        """Whitespace around header names and cells is removed."""
        result = CSVParser().parse_csv(b" name , city \n  Ann ,  Oslo \n")
        assert result.rows == [{"name": "Ann", "city": "Oslo"}]

    def test_quoted_fields(self):
        """Quoted commas, escaped quotes and embedded newlines survive."""
        content = b'name,note\n"Smith, J","He said ""hi"""\n"Lee","line one\nline two"\n'
        result = CSVParser().parse_csv(content)

        assert result.rows[0] == {"name": "Smith, J", "note": 'He said "hi"'}
        assert result.rows[1]["note"] == "line one\nline two"

    def test_crlf_line_endings(self):
        """Windows line endings parse like Unix ones."""
        result = CSVParser().parse_csv(b"a,b\r\n1,2\r\n3,4\r\n")
        assert result.rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_single_column(self):
        """A file without any delimiter is one column."""
        result = CSVParser().parse_csv(b"email\na@x.com\nb@x.com\n")
        assert result.rows == [{"email": "a@x.com"}, {"email": "b@x.com"}]


class TestRaggedRows:
    """Test relaxed column counts."""

    def test_short_row_padded_with_empty_strings(self):
        """Missing trailing cells become empty strings."""
        result = CSVParser().parse_csv(b"a,b,c\n1\n")
        assert result.rows == [{"a": "1", "b": "", "c": ""}]

    def test_long_row_keeps_extra_fields(self):
        """Extra cells are kept under positional column names."""
        result = CSVParser().parse_csv(b"a,b\n1,2,3,4\n")
        assert result.rows == [{"a": "1", "b": "2", "column_3": "3", "column_4": "4"}]

    def test_build_row(self):
        """build_row pads and extends in the same way."""
        parser = CSVParser()
        assert parser.build_row(["a", "b"], ["1"]) == {"a": "1", "b": ""}
        assert parser.build_row(["a"], ["1", "2"]) == {"a": "1", "column_2": "2"}


class TestEmptyRows:
    """Test reporting of empty rows and blank lines."""

    def test_empty_row_reported_not_kept(self):
        """A row with only empty values is an error, not a row."""
        result = CSVParser().parse_csv(b"a,b\n1,2\n,\n3,4\n")

        assert len(result.rows) == 2
        assert len(result.errors) == 1
        assert result.errors[0].row == 3
        assert result.errors[0].message == EMPTY_ROW_MESSAGE

    def test_whitespace_only_row_is_empty(self):
        """Cells holding only spaces count as empty."""
        result = CSVParser().parse_csv(b"a,b\n1,2\n  ,   \n")
        assert [e.row for e in result.errors] == [3]

    def test_blank_lines_skipped_but_counted(self):
        """Blank lines are ignored while later rows keep their physical line number."""
        result = CSVParser().parse_csv(b"a,b\n1,2\n\n\n3,4\n")

        assert result.rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]
        assert result.errors == []
        assert result.line_numbers == [2, 5]
        assert result.total_data_lines == 2

    def test_rows_plus_errors_cover_data_lines(self):
        """Every non-blank data line yields either a row or an error."""
        result = CSVParser().parse_csv(b"a,b\n1,2\n,\n\n3,4\n , \n")
        assert len(result.rows) + len(result.errors) == result.total_data_lines == 4


class TestFatalCases:
    """Test files that cannot produce a dataset."""

    @pytest.mark.parametrize("content", [b"", b"   \n\n  \t\n"])
    def test_empty_file(self, content):
        """Empty and whitespace-only files raise."""
        with pytest.raises(CSVParsingError, match=EMPTY_FILE_MESSAGE):
            CSVParser().parse_csv(content)

    def test_header_only(self):
        """A header without data rows raises."""
        with pytest.raises(CSVParsingError) as exc_info:
            CSVParser().parse_csv(b"name,email\n")
        assert str(exc_info.value) == HEADER_ONLY_MESSAGE

    def test_all_rows_empty(self):
        """A file whose data rows are all empty raises."""
        with pytest.raises(CSVParsingError) as exc_info:
            CSVParser().parse_csv(b"a,b\n,\n , \n")
        assert str(exc_info.value) == ALL_ROWS_EMPTY_MESSAGE


class TestDecoding:
    """Test byte decoding."""

    def test_utf8_bom_stripped(self):
        """A leading BOM does not end up in the first header name."""
        result = CSVParser().parse_csv("\ufeffname,city\nZoë,Zürich\n".encode("utf-8"))

        assert result.headers == ["name", "city"]
        assert result.rows == [{"name": "Zoë", "city": "Zürich"}]
        assert result.encoding == "utf-8"

    def test_forced_encoding(self):
        """An explicit encoding is used as given."""
        content = "name\nJosé\n".encode("latin-1")
        result = CSVParser().parse_csv(content, encoding="latin-1")

        assert result.rows == [{"name": "José"}]
        assert result.encoding == "latin-1"

    def test_non_utf8_bytes_still_decode(self):
        """Bytes that are not UTF-8 are decoded with a detected encoding."""
        content = ("name,city\n" + "Müller,Köln\n" * 20).encode("latin-1")
        text, encoding = CSVParser().decode(content)

        assert encoding != "utf-8"
        assert text.startswith("name,city")


class TestLongCells:
    """Test cells longer than the csv module's default field limit."""

    def test_long_cell_in_first_row(self):
        """A 200k character cell does not stop the file from parsing."""
        long_note = "x" * 200_000
        content = f"id,note\n1,{long_note}\n2,b\n3,c\n".encode()

        result = CSVParser().parse_csv(content)

        assert [row["id"] for row in result.rows] == ["1", "2", "3"]
        assert result.rows[0]["note"] == long_note
        assert result.errors == []

    def test_long_cell_mid_file_keeps_later_rows(self):
        """Rows after a long quoted cell are still parsed with correct line numbers."""
        long_note = "y" * 150_000
        content = f'id,note\n1,a\n2,"{long_note}"\n3,c\n'.encode()

        result = CSVParser().parse_csv(content)

        assert len(result.rows) == 3
        assert result.line_numbers == [2, 3, 4]
        assert len(result.rows) + len(result.errors) == result.total_data_lines


class _BrokenReader:
    """Stand-in for csv.reader that fails after the header."""

    def __init__(self, *args, **kwargs):
        self.line_num = 0

    def __iter__(self):
        return self

    def __next__(self):
        self.line_num += 1
        if self.line_num == 1:
            return ["a", "b"]
        raise csv.Error("unexpected end of data")


class TestMalformedContent:
    """Test csv module errors."""

    def test_error_before_first_row_reports_reason(self, monkeypatch):
        """A reader failure before any data row names the failure, not 'header only'."""
        monkeypatch.setattr(csv_parser.csv, "reader", _BrokenReader)

        with pytest.raises(CSVParsingError) as exc_info:
            CSVParser().parse_csv(b"a,b\n1,2\n")

        assert str(exc_info.value) == "Malformed CSV: unexpected end of data"

    def test_error_after_rows_keeps_them(self, monkeypatch):
        """Rows read before a reader failure are kept and the failure is a row error."""
        class FailsOnThirdLine(_BrokenReader):
            def __next__(self):
                self.line_num += 1
                if self.line_num <= 2:
                    return ["a", "b"] if self.line_num == 1 else ["1", "2"]
                raise csv.Error("unexpected end of data")

        monkeypatch.setattr(csv_parser.csv, "reader", FailsOnThirdLine)

        result = CSVParser().parse_csv(b"a,b\n1,2\n3,4\n")

        assert result.rows == [{"a": "1", "b": "2"}]
        assert result.errors[0].row == 3
        assert result.errors[0].message == "Malformed CSV: unexpected end of data"
