from __future__ import annotations

import logging
from enum import Enum

from .errors import FieldFormatError, IrsFormatError, RecordLengthMismatch, UnknownRecordType
from .field_codec import DEFAULT_ENCODING, decode_field, encode_field
from .layouts import LAYOUTS, RECORD_LENGTH
from .models import RECORD_TYPE_FIELD, SEQUENCE_FIELD, Record, RecordLayout, Value

LOGGER = logging.getLogger(__name__)

CRLF = "\r\n"


class LineEnding(str, Enum):
    CRLF = "crlf"
    LF = "lf"
    NONE = "none"


class LayoutError(RuntimeError):
    pass


def split_lines(text: str, record_length: int = RECORD_LENGTH) -> list[tuple[int, str]]:
    """Split positional text into numbered lines, whatever the framing.

    Accepts LF or CRLF terminated lines and unterminated fixed-size blocks.
    Empty lines are dropped but still counted.
    """
    if "\n" not in text and "\r" not in text and text and len(text) % record_length == 0:
        return [
            (index, text[offset : offset + record_length])
            for index, offset in enumerate(range(0, len(text), record_length), start=1)
        ]

    lines: list[tuple[int, str]] = []
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
        if line == "":
            continue
        lines.append((line_number, line))
    return lines


class RecordCodec:
    def __init__(self, layouts: dict[str, RecordLayout] | None = None, encoding: str = DEFAULT_ENCODING) -> None:
        self.layouts = dict(LAYOUTS if layouts is None else layouts)
        self.encoding = encoding
        self._validate_layouts()

    def _validate_layouts(self) -> None:
        for code, layout in self.layouts.items():
            if code != layout.code:
                raise LayoutError(f"Layout registered under {code!r} declares code {layout.code!r}")

    def layout_for_line(self, line: str) -> RecordLayout | None:
        return self.layouts.get(line[:1])

    def decode_line(self, line: str, line_number: int) -> tuple[Record, list[FieldFormatError]]:
        """Decode one line; field errors are returned, not raised.

        Raises ``UnknownRecordType`` or ``RecordLengthMismatch`` when the line cannot
        be mapped to a layout at all.
        """
        layout = self.layout_for_line(line)
        if layout is None:
            raise UnknownRecordType(line_number=line_number, code=line[:1])

        if len(line) == layout.length - len(CRLF):
            # Terminator occupied positions 749-750.
            line = line + " " * len(CRLF)
        if len(line) != layout.length:
            raise RecordLengthMismatch(line_number=line_number, actual=len(line), expected=layout.length)

        values: dict[str, Value] = {}
        sequence_number: int | None = None
        errors: list[FieldFormatError] = []
        for spec in layout.fields:
            if spec.filler or spec.name == RECORD_TYPE_FIELD:
                continue
            try:
                value = decode_field(line, spec)
            except FieldFormatError as error:
                errors.append(error.at_line(line_number))
                value = None
            if spec.name == SEQUENCE_FIELD:
                sequence_number = value if isinstance(value, int) else None
            else:
                values[spec.name] = value

        record = Record(
            code=layout.code,
            values=values,
            sequence_number=sequence_number,
            line_number=line_number,
        )
        return record, errors

    def decode_lines(self, text: str) -> tuple[list[Record], list[IrsFormatError]]:
        records: list[Record] = []
        issues: list[IrsFormatError] = []

        for line_number, line in split_lines(text):
            try:
                record, field_errors = self.decode_line(line, line_number)
            except (UnknownRecordType, RecordLengthMismatch) as error:
                issues.append(error)
                continue
            issues.extend(field_errors)
            records.append(record)

        if issues:
            LOGGER.warning("Decoding finished with %s issue(s).", len(issues))
        return records, issues

    def encode_record(self, record: Record) -> str:
        layout = self.layouts.get(record.code)
        if layout is None:
            raise UnknownRecordType(code=record.code)

        parts: list[str] = []
        for spec in layout.fields:
            if spec.name == RECORD_TYPE_FIELD:
                value: Value = record.code
            elif spec.name == SEQUENCE_FIELD:
                value = record.sequence_number
            elif spec.filler:
                value = None
            else:
                value = record.values.get(spec.name)
            parts.append(encode_field(value, spec, self.encoding))

        line = "".join(parts)
        if len(line) != layout.length:
            raise AssertionError(f"Record {record.code} encoded to {len(line)} positions, expected {layout.length}")
        return line

    def encode_lines(self, records: list[Record], line_ending: LineEnding = LineEnding.CRLF) -> str:
        lines = [self.encode_record(record) for record in records]
        if line_ending == LineEnding.CRLF:
            return "".join(line[: -len(CRLF)] + CRLF for line in lines)
        if line_ending == LineEnding.LF:
            return "".join(line + "\n" for line in lines)
        return "".join(lines)
