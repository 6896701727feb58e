from __future__ import annotations

from .errors import FieldEncodingError, FieldFormatError, FieldTooLong
from .models import FieldSpec, Justify, Value

DEFAULT_ENCODING = "latin-1"

_LINE_BREAKS = ("\r", "\n")


def _is_digits(text: str) -> bool:
    return text.isascii() and text.isdigit()


def strip_padding(raw: str, spec: FieldSpec) -> str:
    if spec.justify == Justify.LEFT:
        return raw.rstrip(spec.pad)
    return raw.lstrip(spec.pad)


def encodable(text: str, encoding: str = DEFAULT_ENCODING) -> bool:
    try:
        text.encode(encoding)
    except UnicodeEncodeError:
        return False
    return True


def decode_field(line: str, spec: FieldSpec) -> Value:
    """Read ``spec`` from ``line`` and coerce it to its kind.

    Alphanumeric values lose only the declared pad character on the padded side.
    Numeric values are integers (amounts are whole cents); an all-blank numeric
    field decodes to ``None``.
    """
    raw = line[spec.offset : spec.offset + spec.length]

    if not spec.is_numeric:
        return strip_padding(raw, spec)

    if raw.strip(" ") == "":
        return None

    body = strip_padding(raw, spec)
    if body == "":
        return 0

    negative = False
    if spec.signed and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]

    if not _is_digits(body):
        raise FieldFormatError(field_name=spec.name, raw=raw, kind=spec.kind.value)

    number = int(body)
    return -number if negative else number


def encode_field(value: Value, spec: FieldSpec, encoding: str = DEFAULT_ENCODING) -> str:
    if spec.filler:
        return spec.pad * spec.length

    if spec.is_numeric:
        return _encode_numeric(value, spec)
    return _encode_alphanumeric(value, spec, encoding)


def _encode_numeric(value: Value, spec: FieldSpec) -> str:
    if value is None:
        # Blank, not zero: decodes back to None.
        return " " * spec.length
    if isinstance(value, bool) or not isinstance(value, int):
        raise FieldFormatError(field_name=spec.name, raw=value, kind=spec.kind.value)
    if value < 0 and not spec.signed:
        raise FieldFormatError(field_name=spec.name, raw=value, kind=spec.kind.value)

    sign = "-" if value < 0 else ""
    digits = str(abs(value))
    size = len(sign) + len(digits)
    if size > spec.length:
        raise FieldTooLong(field_name=spec.name, value=value, size=size, length=spec.length)

    if spec.justify == Justify.LEFT:
        return (sign + digits).ljust(spec.length, spec.pad)
    if sign and spec.pad == "0":
        # The sign leads the zero padding: -00000000123
        return sign + digits.rjust(spec.length - 1, "0")
    return (sign + digits).rjust(spec.length, spec.pad)


def _encode_alphanumeric(value: Value, spec: FieldSpec, encoding: str) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str) or any(mark in value for mark in _LINE_BREAKS):
        raise FieldFormatError(field_name=spec.name, raw=value, kind=spec.kind.value)
    if not encodable(value, encoding):
        raise FieldEncodingError(field_name=spec.name, value=value, encoding=encoding)
    if len(value) > spec.length:
        raise FieldTooLong(field_name=spec.name, value=value, size=len(value), length=spec.length)
    if spec.justify == Justify.RIGHT:
        return value.rjust(spec.length, spec.pad)
    return value.ljust(spec.length, spec.pad)


def fits(value: Value, spec: FieldSpec, encoding: str = DEFAULT_ENCODING) -> bool:
    """True when ``value`` can be encoded into ``spec`` without error."""
    try:
        encode_field(value, spec, encoding)
    except (FieldFormatError, FieldTooLong):
        return False
    return True
