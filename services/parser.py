"""Parsing of uploaded sensor text into validated machine records.

Two encodings are accepted:

* delimited: a ``machine_id,temp,vibration,runtime`` header (any column order,
  extra columns allowed) followed by comma separated rows;
* positional: one machine per line, ``ID TEMP VIBRATION RUNTIME`` separated by
  whitespace and/or commas.

Parsing is fail-fast: the first invalid row rejects the whole input.
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Dict, List, Optional

from models.records import MachineRecord
from services.errors import (
    ColumnCountMismatch,
    EmptyInput,
    InsufficientFields,
    InvalidNumericField,
    MissingColumns,
    MissingHeaderRow,
    NoValidRows,
)

REQUIRED_COLUMNS = ("machine_id", "temp", "vibration", "runtime")
NUMERIC_FIELDS = ("temp", "vibration", "runtime")

_POSITIONAL_SPLIT = re.compile(r"[\s,]+")
_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

RawRow = Dict[str, str]


class InputFormat(str, Enum):
    delimited = "delimited"
    positional = "positional"


def detect_format(first_line: str) -> InputFormat:
    """Guess the encoding from the first non-blank line.

    A line mentioning ``machine_id`` that also contains a comma is taken as a
    header. Anything else is positional data.
    """
    if "machine_id" in first_line.lower() and "," in first_line:
        return InputFormat.delimited
    return InputFormat.positional


def parse(text: str, fmt: Optional[InputFormat] = None) -> List[MachineRecord]:
    """Parse ``text`` into machine records, in file order.

    ``fmt`` skips format detection when given. Raises a ``ParseError``
    subclass describing the first problem found.
    """
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        raise EmptyInput()

    input_format = fmt if fmt is not None else detect_format(lines[0])
    if input_format is InputFormat.delimited:
        return _parse_delimited(lines)
    return _parse_positional(lines)


def parse_number(raw_value: str, row_number: int, field: str) -> float:
    """Plain ASCII decimal or exponent notation only; the result must be finite."""
    if not _NUMBER.fullmatch(raw_value):
        raise InvalidNumericField(row_number, field, raw_value)
    value = float(raw_value)
    if not math.isfinite(value):
        raise InvalidNumericField(row_number, field, raw_value)
    return value


def _parse_delimited(lines: List[str]) -> List[MachineRecord]:
    if len(lines) < 2:
        raise MissingHeaderRow()

    headers = [name.strip().lower() for name in lines[0].split(",")]
    missing = [name for name in REQUIRED_COLUMNS if name not in headers]
    if missing:
        raise MissingColumns(missing)

    records: List[MachineRecord] = []
    # The header is row 1.
    for row_number, line in enumerate(lines[1:], start=2):
        values = [value.strip() for value in line.split(",")]
        if len(values) != len(headers):
            raise ColumnCountMismatch(row_number, len(values), len(headers))

        row: RawRow = dict(zip(headers, values))
        temp, vibration, runtime = (
            parse_number(row[field], row_number, field) for field in NUMERIC_FIELDS
        )
        records.append(
            MachineRecord(
                machine_id=row["machine_id"],
                temperature=temp,
                vibration=vibration,
                runtime_hours=runtime,
            )
        )
    return records


def _parse_positional(lines: List[str]) -> List[MachineRecord]:
    records: List[MachineRecord] = []
    for row_number, line in enumerate(lines, start=1):
        parts = [part for part in _POSITIONAL_SPLIT.split(line.strip()) if part]
        if len(parts) < 4:
            raise InsufficientFields(row_number)

        machine_id = parts[0]
        temp, vibration, runtime = (
            parse_number(raw, row_number, field)
            for raw, field in zip(parts[1:4], NUMERIC_FIELDS)
        )
        records.append(
            MachineRecord(
                machine_id=machine_id,
                temperature=temp,
                vibration=vibration,
                runtime_hours=runtime,
            )
        )

    if not records:
        raise NoValidRows()
    return records
