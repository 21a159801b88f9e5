"""Validation failures raised while ingesting a submission.

Every error carries a stable ``code`` for API consumers and a message that
names the offending row, column and value so it can be shown to the operator
as-is. None of these indicate an internal fault.
"""

from __future__ import annotations

from typing import Optional, Sequence


class AnalysisError(ValueError):
    code = "analysis_error"

    def __init__(
        self,
        message: str,
        row_number: Optional[int] = None,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.row_number = row_number
        self.field = field


class ParseError(AnalysisError):
    code = "parse_error"


class EmptyInput(ParseError):
    code = "empty_input"

    def __init__(self) -> None:
        super().__init__("File must contain at least one data row")


class MissingHeaderRow(ParseError):
    code = "missing_header_row"

    def __init__(self) -> None:
        super().__init__("CSV file must contain at least a header row and one data row")


class MissingColumns(ParseError):
    code = "missing_columns"

    def __init__(self, names: Sequence[str]) -> None:
        self.names = tuple(names)
        super().__init__(f"Missing required columns: {', '.join(self.names)}")


class ColumnCountMismatch(ParseError):
    code = "column_count_mismatch"

    def __init__(self, row_number: int, got: int, expected: int) -> None:
        self.got = got
        self.expected = expected
        super().__init__(
            f"Row {row_number} has {got} columns, expected {expected}",
            row_number=row_number,
        )


class InsufficientFields(ParseError):
    code = "insufficient_fields"

    def __init__(self, row_number: int) -> None:
        super().__init__(
            f"Row {row_number} has insufficient data. "
            "Expected: machine_id, temp, vibration, runtime",
            row_number=row_number,
        )


class InvalidNumericField(ParseError):
    code = "invalid_numeric_field"

    def __init__(self, row_number: int, field: str, raw_value: str) -> None:
        self.raw_value = raw_value
        super().__init__(
            f"Invalid {field} value in row {row_number}: {raw_value}",
            row_number=row_number,
            field=field,
        )


class NoValidRows(ParseError):
    code = "no_valid_rows"

    def __init__(self) -> None:
        super().__init__("No valid data rows found in file")


class SubmissionError(AnalysisError):
    code = "submission_error"


class TooManyRows(SubmissionError):
    code = "too_many_rows"

    def __init__(self, row_count: int, limit: int) -> None:
        self.row_count = row_count
        self.limit = limit
        super().__init__(
            f"File too large: {row_count:,} rows submitted. Maximum {limit:,} rows allowed."
        )


class EmptySubmission(SubmissionError):
    code = "empty_submission"

    def __init__(self) -> None:
        super().__init__("No data rows found in file")


class InvalidEncoding(SubmissionError):
    code = "invalid_encoding"

    def __init__(self) -> None:
        super().__init__("Uploaded file is not valid UTF-8 text")
