"""Conversion and validation of IRS Publication 1220 fixed-width information returns."""

from .assembler import assemble, flatten
from .converter import DecodeResult, decode_irs, encode_irs, read_document, render_document
from .errors import (
    FieldFormatError,
    FieldTooLong,
    IrsFormatError,
    MalformedDocument,
    OrphanPayee,
    RecordLengthMismatch,
    UnexpectedRecordOrder,
    UnknownRecordType,
)
from .models import Document, FieldSpec, Finding, PayerGroup, Record, RecordLayout, Severity
from .portable import from_portable, to_portable
from .record_codec import LineEnding, RecordCodec
from .validator import Validator, findings_payload, validate

__all__ = [
    "DecodeResult",
    "Document",
    "FieldFormatError",
    "FieldSpec",
    "FieldTooLong",
    "Finding",
    "IrsFormatError",
    "LineEnding",
    "MalformedDocument",
    "OrphanPayee",
    "PayerGroup",
    "Record",
    "RecordCodec",
    "RecordLayout",
    "RecordLengthMismatch",
    "Severity",
    "UnexpectedRecordOrder",
    "UnknownRecordType",
    "Validator",
    "assemble",
    "decode_irs",
    "encode_irs",
    "findings_payload",
    "flatten",
    "from_portable",
    "read_document",
    "render_document",
    "to_portable",
    "validate",
]
