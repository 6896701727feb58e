from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .errors import MalformedDocument
from .field_codec import strip_padding
from .layouts import END_OF_PAYER, END_OF_TRANSMISSION, LAYOUTS, PAYEE, PAYER, STATE_TOTALS, TRANSMITTER
from .models import RECORD_TYPE_FIELD, SEQUENCE_FIELD, Document, FieldSpec, PayerGroup, Record, Value

LOGGER = logging.getLogger(__name__)


class PortablePayerGroup(BaseModel):
    payer: dict[str, Any]
    payees: list[dict[str, Any]] = Field(default_factory=list)
    end_of_payer: dict[str, Any]
    state_totals: list[dict[str, Any]] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


class PortableDocument(BaseModel):
    transmitter: dict[str, Any]
    payers: list[PortablePayerGroup] = Field(min_length=1)
    end_of_transmission: dict[str, Any]

    model_config = {"extra": "forbid"}


def record_tree(record: Record | None) -> dict[str, Any] | None:
    if record is None:
        return None
    layout = LAYOUTS[record.code]
    tree: dict[str, Any] = {}
    for spec in layout.fields:
        if spec.filler:
            continue
        if spec.name == RECORD_TYPE_FIELD:
            tree[spec.name] = record.code
        elif spec.name == SEQUENCE_FIELD:
            tree[spec.name] = record.sequence_number
        else:
            tree[spec.name] = record.values.get(spec.name)
    return tree


def to_portable(document: Document) -> dict[str, Any]:
    """JSON-ready tree mirroring the document hierarchy, fields in layout order."""
    return {
        "transmitter": record_tree(document.transmitter),
        "payers": [
            {
                "payer": record_tree(group.payer),
                "payees": [record_tree(payee) for payee in group.payees],
                "end_of_payer": record_tree(group.end_of_payer),
                "state_totals": [record_tree(item) for item in group.state_totals],
            }
            for group in document.payers
        ],
        "end_of_transmission": record_tree(document.end_of_transmission),
    }


def _default_value(spec: FieldSpec) -> Value:
    if not spec.is_numeric:
        return ""
    return None if spec.pad == " " else 0


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _record_from_tree(tree: dict[str, Any], code: str, path: str, problems: list[str]) -> Record:
    layout = LAYOUTS[code]
    known = layout.by_name

    record_type = tree.get(RECORD_TYPE_FIELD, code)
    if record_type != code:
        problems.append(f"{path}.{RECORD_TYPE_FIELD}: expected {code!r}, got {record_type!r}")
    for key in tree:
        if key not in known:
            problems.append(f"{path}.{key}: unknown field for record {code}")

    values: dict[str, Value] = {}
    for spec in layout.value_fields:
        if spec.name not in tree:
            values[spec.name] = _default_value(spec)
            continue
        value = tree[spec.name]
        if spec.is_numeric:
            if isinstance(value, float) and value.is_integer():
                value = int(value)
            if value is not None and not _is_integer(value):
                problems.append(f"{path}.{spec.name}: expected a number, got {value!r}")
                value = None
        else:
            if value is None:
                value = ""
            elif not isinstance(value, str):
                problems.append(f"{path}.{spec.name}: expected a string, got {value!r}")
                value = ""
            else:
                # Trailing pad cannot survive a positional encode.
                value = strip_padding(value, spec)
        values[spec.name] = value

    sequence_number = tree.get(SEQUENCE_FIELD)
    if sequence_number is not None and not _is_integer(sequence_number):
        problems.append(f"{path}.{SEQUENCE_FIELD}: expected a number, got {sequence_number!r}")
        sequence_number = None

    return Record(code=code, values=values, sequence_number=sequence_number)


def from_portable(tree: Any) -> Document:
    """Rebuild a document from its portable tree.

    Raises ``MalformedDocument`` listing every structural or typing problem found.
    """
    try:
        shape = PortableDocument.model_validate(tree)
    except ValidationError as error:
        problems = [
            f"{'.'.join(str(part) for part in item['loc']) or 'document'}: {item['msg']}"
            for item in error.errors()
        ]
        raise MalformedDocument(problems) from error

    problems: list[str] = []
    document = Document(
        transmitter=_record_from_tree(shape.transmitter, TRANSMITTER, "transmitter", problems),
    )
    for index, group in enumerate(shape.payers):
        path = f"payers.{index}"
        document.payers.append(
            PayerGroup(
                payer=_record_from_tree(group.payer, PAYER, f"{path}.payer", problems),
                payees=[
                    _record_from_tree(payee, PAYEE, f"{path}.payees.{position}", problems)
                    for position, payee in enumerate(group.payees)
                ],
                end_of_payer=_record_from_tree(group.end_of_payer, END_OF_PAYER, f"{path}.end_of_payer", problems),
                state_totals=[
                    _record_from_tree(item, STATE_TOTALS, f"{path}.state_totals.{position}", problems)
                    for position, item in enumerate(group.state_totals)
                ],
            )
        )
    document.end_of_transmission = _record_from_tree(
        shape.end_of_transmission, END_OF_TRANSMISSION, "end_of_transmission", problems
    )

    if problems:
        LOGGER.warning("Portable document rejected with %s problem(s).", len(problems))
        raise MalformedDocument(problems)
    return document


def dumps(document: Document, indent: int | None = 2) -> str:
    return json.dumps(to_portable(document), ensure_ascii=False, indent=indent)


def loads(text: str | bytes) -> Document:
    try:
        tree = json.loads(text)
    except ValueError as error:
        raise MalformedDocument([f"invalid JSON: {error}"]) from error
    return from_portable(tree)
