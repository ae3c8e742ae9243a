"""
Tests for the CSV ingestion pipeline.

Covers stage ordering, the three duplicate handling policies and column
mapping applied after duplicate detection.
"""
import pytest

from csvhub.core.exceptions import CSVParsingError
from csvhub.services.duplicates import DuplicateHandling
from csvhub.services.ingestion import CSVIngestionService, IngestionOptions


DUPLICATE_EMAILS = (
    b"name,email\n"
    b"Alice,alice@example.com\n"
    b"Bob,bob@example.com\n"
    b"Alice Again,ALICE@example.com\n"
)


class TestIngestDefaults:
    """Test ingestion without options."""

    def test_rows_pass_through(self):
        result = CSVIngestionService().ingest(b"a,b\n1,2\n3,4\n")

        assert result.data == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]
        assert result.total_rows == 2
        assert result.duplicates is None
        assert result.duplicate_count == 0

    def test_parse_errors_carried(self, sample_csv):
        """Empty rows are reported as warnings and the rest imported."""
        result = CSVIngestionService().ingest(sample_csv)

        assert result.total_rows == 3
        assert result.error_messages() == ["Row 4: Row contains only empty values"]

    def test_parse_failure_propagates(self):
        with pytest.raises(CSVParsingError):
            CSVIngestionService().ingest(b"a,b\n")


class TestDuplicateHandling:
    """Test skip, keep and mark policies."""

    def _options(self, handling: DuplicateHandling) -> IngestionOptions:
        return IngestionOptions(
            detect_duplicates=True,
            duplicate_columns=["email"],
            handle_duplicates=handling,
        )

    def test_skip_drops_duplicates(self):
        result = CSVIngestionService().ingest(DUPLICATE_EMAILS, self._options(DuplicateHandling.SKIP))

        assert [row["name"] for row in result.data] == ["Alice", "Bob"]
        assert result.duplicate_count == 1
        assert result.duplicates[0].row == 4
        assert result.duplicates[0].duplicate_of == 2
        assert result.errors == []

    def test_keep_reports_but_keeps(self):
        result = CSVIngestionService().ingest(DUPLICATE_EMAILS, self._options(DuplicateHandling.KEEP))

        assert result.total_rows == 3
        assert result.duplicate_count == 1
        assert result.errors == []

    def test_mark_adds_warning(self):
        result = CSVIngestionService().ingest(DUPLICATE_EMAILS, self._options(DuplicateHandling.MARK))

        assert result.total_rows == 3
        assert result.error_messages() == ["Row 4: Duplicate of row 2"]

    def test_duplicate_rows_use_file_line_numbers(self):
        """Line numbers account for empty rows dropped by the parser."""
        content = b"id\n1\n\n \n1\n"
        result = CSVIngestionService().ingest(
            content, IngestionOptions(detect_duplicates=True, handle_duplicates=DuplicateHandling.MARK)
        )

        assert result.duplicates[0].row == 5
        assert result.duplicates[0].duplicate_of == 2

    def test_detection_off_ignores_columns(self):
        options = IngestionOptions(duplicate_columns=["email"], handle_duplicates=DuplicateHandling.SKIP)
        result = CSVIngestionService().ingest(DUPLICATE_EMAILS, options)

        assert result.total_rows == 3
        assert result.duplicates is None

    def test_blank_duplicate_columns_mean_all_columns(self):
        options = IngestionOptions(detect_duplicates=True, duplicate_columns=[" ", ""])
        assert options.duplicate_columns == []

        result = CSVIngestionService().ingest(DUPLICATE_EMAILS, options)
        assert result.duplicate_count == 0


class TestColumnMappingStage:
    """Test mapping after duplicate detection."""

    def test_mapping_applied_to_final_rows(self):
        options = IngestionOptions(column_mapping={"email": "contact_email"})
        result = CSVIngestionService().ingest(DUPLICATE_EMAILS, options)

        assert set(result.data[0]) == {"name", "contact_email"}

    def test_detection_uses_source_column_names(self):
        """Key columns refer to the file's headers, not the mapped names."""
        options = IngestionOptions(
            detect_duplicates=True,
            duplicate_columns=["email"],
            handle_duplicates=DuplicateHandling.SKIP,
            column_mapping={"email": "contact_email"},
        )
        result = CSVIngestionService().ingest(DUPLICATE_EMAILS, options)

        assert result.total_rows == 2
        assert result.data[0] == {"name": "Alice", "contact_email": "alice@example.com"}
        # Reported duplicates keep the parsed (unmapped) row
        assert "email" in result.duplicates[0].data
