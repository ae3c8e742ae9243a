"""
CSV Parser service for turning uploaded bytes into header-keyed rows.

The first non-empty line is the header; every following line becomes a row
keyed by the header names. Ragged rows are tolerated, wholly empty rows are
reported as row-level errors, and only files that cannot yield a single data
row raise.
"""
import csv
import io
import logging
from typing import Dict, List, Optional, Tuple

import chardet
from pydantic import BaseModel, Field

from csvhub.core.exceptions import CSVParsingError

logger = logging.getLogger(__name__)

Row = Dict[str, str]

EMPTY_ROW_MESSAGE = "Row contains only empty values"
EMPTY_FILE_MESSAGE = "CSV file is empty"
HEADER_ONLY_MESSAGE = "CSV file contains only a header row with no data rows"
ALL_ROWS_EMPTY_MESSAGE = "CSV file contains no valid data rows (all rows are empty)"


def allow_field_size(size: int) -> None:
    """Raise the csv module's per-field limit (process wide, never lowered) to at least ``size`` characters."""
    if csv.field_size_limit() < size:
        csv.field_size_limit(size)


class ParseError(BaseModel):
    """A non-fatal problem with a specific row."""
    row: int = Field(description="Line number in the file, header is line 1")
    message: str


class ParseResult(BaseModel):
    """Result of parsing a CSV file."""
    rows: List[Row]
    errors: List[ParseError] = Field(default_factory=list)
    line_numbers: List[int] = Field(default_factory=list, description="Line number of each row in `rows`")
    headers: List[str] = Field(default_factory=list)
    total_data_lines: int = Field(0, description="Non-blank lines after the header")
    encoding: str = "utf-8"


class CSVParser:
    """
    Header-driven CSV parser.

    Features:
    - Strips a leading UTF-8 byte-order mark
    - Falls back to chardet when the bytes are not valid UTF-8
    - Trims header names and cell values
    - Relaxed column count: missing cells become "", extra cells are kept
      under positional names (``column_4`` for the fourth field)
    - Skips blank lines without disturbing line numbering
    """

    EXTRA_COLUMN_TEMPLATE = "column_{position}"

    def decode(self, file_bytes: bytes) -> Tuple[str, str]:
        """
        Decode raw file bytes.

        Args:
            file_bytes: Raw file bytes

        Returns:
            Tuple of (decoded text without BOM, encoding used)
        """
        try:
            return file_bytes.decode("utf-8-sig"), "utf-8"
        except UnicodeDecodeError:
            pass

        detected = chardet.detect(file_bytes)
        encoding = detected.get("encoding")
        if encoding:
            try:
                text = file_bytes.decode(encoding)
                logger.info(f"Decoded non UTF-8 upload as {encoding} (confidence {detected.get('confidence')})")
                return text.lstrip("\ufeff"), encoding.lower()
            except (UnicodeDecodeError, LookupError):
                pass

        logger.warning("Could not detect upload encoding, decoding as UTF-8 with replacement characters")
        return file_bytes.decode("utf-8", errors="replace"), "utf-8"

    def build_row(self, headers: List[str], values: List[str]) -> Row:
        """
        Key a list of cell values by header names.

        Examples:
            (["a", "b"], ["1"]) → {"a": "1", "b": ""}
            (["a"], ["1", "2"]) → {"a": "1", "column_2": "2"}
        """
        row: Row = {}
        for position, value in enumerate(values):
            if position < len(headers):
                key = headers[position]
            else:
                key = self.EXTRA_COLUMN_TEMPLATE.format(position=position + 1)
            row[key] = value.strip()

        for header in headers[len(values):]:
            row.setdefault(header, "")

        return row

    @staticmethod
    def is_empty_row(row: Row) -> bool:
        """A row is empty when every value is empty or whitespace."""
        return all(not value.strip() for value in row.values())

    def parse_csv(self, file_bytes: bytes, encoding: Optional[str] = None) -> ParseResult:
        """
        Parse CSV bytes into rows.

        Args:
            file_bytes: Raw CSV file bytes
            encoding: Force a specific encoding instead of detecting one

        Returns:
            ParseResult with rows, row-level errors and line numbers

        Raises:
            CSVParsingError: file is empty, has only a header, or every data row is empty,
                or malformed before its first data row
        """
        if encoding:
            text = file_bytes.decode(encoding).lstrip("\ufeff")
        else:
            text, encoding = self.decode(file_bytes)

        content = text.strip()
        if not content:
            raise CSVParsingError(EMPTY_FILE_MESSAGE)

        # A single cell can be as long as the whole file
        allow_field_size(len(content))
        reader = csv.reader(io.StringIO(content, newline=""))

        rows: List[Row] = []
        line_numbers: List[int] = []
        errors: List[ParseError] = []
        headers: List[str] = []
        total_data_lines = 0
        malformed: Optional[str] = None

        try:
            headers = [name.strip() for name in next(reader)]
            last_line = reader.line_num

            for values in reader:
                line_number = last_line + 1  # Line where this record starts
                last_line = reader.line_num

                if not values:
                    continue  # Blank line

                total_data_lines += 1
                row = self.build_row(headers, values)

                if self.is_empty_row(row):
                    errors.append(ParseError(row=line_number, message=EMPTY_ROW_MESSAGE))
                    continue

                rows.append(row)
                line_numbers.append(line_number)
        except csv.Error as e:
            # The reader cannot resume after a hard error; keep what was parsed.
            failed_line = reader.line_num or 1
            logger.warning(f"CSV reader stopped at line {failed_line}: {e}")
            malformed = f"Malformed CSV: {e}"
            errors.append(ParseError(row=failed_line, message=malformed))

        if not rows:
            if malformed and total_data_lines == 0:
                raise CSVParsingError(malformed)
            if total_data_lines == 0:
                raise CSVParsingError(HEADER_ONLY_MESSAGE)
            raise CSVParsingError(ALL_ROWS_EMPTY_MESSAGE)

        return ParseResult(
            rows=rows,
            errors=errors,
            line_numbers=line_numbers,
            headers=headers,
            total_data_lines=total_data_lines,
            encoding=encoding,
        )
