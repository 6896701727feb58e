"""Whole-file conversions between positional text, documents and JSON."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .assembler import assemble, flatten
from .messages import DEFAULT_LOCALE
from .models import Document, Finding
from .portable import dumps, loads
from .record_codec import DEFAULT_ENCODING, LineEnding, RecordCodec

LOGGER = logging.getLogger(__name__)

FORMAT_IRS = "irs"
FORMAT_JSON = "json"
FORMATS = (FORMAT_IRS, FORMAT_JSON)


@dataclass
class DecodeResult:
    document: Document
    findings: list[Finding] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.findings


def sniff_format(data: bytes | str) -> str:
    """JSON documents start with an object; anything else is positional."""
    head = data[:64].lstrip()
    if isinstance(head, bytes):
        head = head.lstrip(b"\xef\xbb\xbf").decode("latin-1")
    return FORMAT_JSON if head.startswith("{") else FORMAT_IRS


def decode_irs(
    data: bytes | str,
    encoding: str = DEFAULT_ENCODING,
    locale: str = DEFAULT_LOCALE,
    codec: RecordCodec | None = None,
) -> DecodeResult:
    text = data.decode(encoding) if isinstance(data, bytes) else data
    codec = codec or RecordCodec()
    records, codec_issues = codec.decode_lines(text)
    document, assembly_issues = assemble(records)
    findings = sorted(
        (issue.to_finding(locale) for issue in [*codec_issues, *assembly_issues]),
        key=Finding.sort_key,
    )
    LOGGER.info(
        "Decoded %s record(s) into %s payer group(s), %s finding(s).",
        len(records),
        len(document.payers),
        len(findings),
    )
    return DecodeResult(document=document, findings=findings)


def decode_json(data: bytes | str) -> DecodeResult:
    return DecodeResult(document=loads(data))


def read_document(
    data: bytes | str,
    encoding: str = DEFAULT_ENCODING,
    locale: str = DEFAULT_LOCALE,
) -> DecodeResult:
    """Decode either representation; JSON input raises ``MalformedDocument``."""
    if sniff_format(data) == FORMAT_JSON:
        return decode_json(data)
    return decode_irs(data, encoding=encoding, locale=locale)


def encode_irs(
    document: Document,
    line_ending: LineEnding = LineEnding.CRLF,
    encoding: str = DEFAULT_ENCODING,
    codec: RecordCodec | None = None,
) -> bytes:
    codec = codec or RecordCodec(encoding=encoding)
    return codec.encode_lines(flatten(document), line_ending).encode(encoding)


def render_document(
    document: Document,
    output_format: str,
    line_ending: LineEnding = LineEnding.CRLF,
    encoding: str = DEFAULT_ENCODING,
) -> bytes:
    if output_format == FORMAT_IRS:
        return encode_irs(document, line_ending=line_ending, encoding=encoding)
    if output_format == FORMAT_JSON:
        return dumps(document).encode("utf-8")
    raise ValueError(f"Unsupported format {output_format!r}, expected one of {', '.join(FORMATS)}")
