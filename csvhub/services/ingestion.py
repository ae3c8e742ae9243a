"""
CSV ingestion pipeline: parse, detect duplicates, remap columns.
"""
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from csvhub.services.column_mapper import apply_column_mapping
from csvhub.services.csv_parser import CSVParser, ParseError, Row
from csvhub.services.duplicates import DuplicateDetector, DuplicateEntry, DuplicateHandling

logger = logging.getLogger(__name__)


class IngestionOptions(BaseModel):
    """Caller-supplied options controlling one ingestion run."""
    detect_duplicates: bool = False
    duplicate_columns: List[str] = Field(default_factory=list)
    handle_duplicates: DuplicateHandling = DuplicateHandling.KEEP
    column_mapping: Dict[str, str] = Field(default_factory=dict)

    @field_validator("duplicate_columns")
    @classmethod
    def strip_columns(cls, v: List[str]) -> List[str]:
        return [column.strip() for column in v if column and column.strip()]


class IngestionResult(BaseModel):
    """Final dataset of an ingestion run."""
    data: List[Row]
    errors: List[ParseError] = Field(default_factory=list)
    duplicates: Optional[List[DuplicateEntry]] = None
    encoding: str = "utf-8"

    @property
    def total_rows(self) -> int:
        return len(self.data)

    @property
    def duplicate_count(self) -> int:
        return len(self.duplicates) if self.duplicates else 0

    def error_messages(self) -> List[str]:
        """Row-level errors formatted for storage on the upload record."""
        return [f"Row {error.row}: {error.message}" for error in self.errors]


class CSVIngestionService:
    """
    Runs the ingestion pipeline for a single upload.

    Stages run strictly in order:
    1. Parse (the only stage that can fail; CSVParsingError propagates)
    2. Duplicate detection with the configured handling policy
    3. Column mapping

    Persistence is the caller's job: the upload record is created before
    ``ingest`` runs and updated with its outcome afterwards.
    """

    def __init__(
        self,
        parser: Optional[CSVParser] = None,
        detector: Optional[DuplicateDetector] = None,
    ):
        self.parser = parser or CSVParser()
        self.detector = detector or DuplicateDetector()

    def ingest(self, file_bytes: bytes, options: Optional[IngestionOptions] = None) -> IngestionResult:
        """
        Turn uploaded bytes into the final row set.

        Args:
            file_bytes: Raw CSV file bytes
            options: Duplicate and mapping options (defaults: no detection, no mapping)

        Returns:
            IngestionResult with final rows, accumulated row errors and duplicates

        Raises:
            CSVParsingError: the file cannot produce any data rows
        """
        options = options or IngestionOptions()

        parse_result = self.parser.parse_csv(file_bytes)
        errors = list(parse_result.errors)
        rows = parse_result.rows
        duplicates: Optional[List[DuplicateEntry]] = None

        if options.detect_duplicates:
            detection = self.detector.detect_duplicates(
                rows,
                columns=options.duplicate_columns,
                line_numbers=parse_result.line_numbers,
            )
            duplicates = detection.duplicates

            if options.handle_duplicates == DuplicateHandling.SKIP:
                rows = detection.unique_rows
            elif options.handle_duplicates == DuplicateHandling.MARK:
                errors.extend(
                    ParseError(row=duplicate.row, message=f"Duplicate of row {duplicate.duplicate_of}")
                    for duplicate in detection.duplicates
                )
            # KEEP: rows and errors unchanged

        if options.column_mapping:
            rows = apply_column_mapping(rows, options.column_mapping)

        logger.info(
            f"Ingested {len(rows)} rows from {parse_result.total_data_lines} data lines "
            f"({len(errors)} row errors, {len(duplicates) if duplicates else 0} duplicates)"
        )

        return IngestionResult(
            data=rows,
            errors=errors,
            duplicates=duplicates,
            encoding=parse_result.encoding,
        )
