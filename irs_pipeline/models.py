from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator

from pydantic import BaseModel, Field, field_validator, model_validator

Value = int | str | None

RECORD_TYPE_FIELD = "record_type"
SEQUENCE_FIELD = "record_sequence_number"


class FieldKind(str, Enum):
    NUMERIC = "numeric"
    ALPHANUMERIC = "alphanumeric"


class Justify(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class FieldSpec(BaseModel):
    name: str = Field(min_length=1)
    start: int = Field(ge=1)
    length: int = Field(ge=1)
    kind: FieldKind = Field(default=FieldKind.ALPHANUMERIC)
    justify: Justify = Field(default=Justify.LEFT)
    pad: str = Field(default=" ", min_length=1, max_length=1)
    required: bool = False
    allowed_values: frozenset[str] | None = None
    signed: bool = False
    min_value: int | None = None
    max_value: int | None = None
    filler: bool = False
    description: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def apply_kind_defaults(cls, data: Any) -> Any:
        if isinstance(data, dict) and FieldKind(data.get("kind", FieldKind.ALPHANUMERIC)) == FieldKind.NUMERIC:
            data = dict(data)
            data.setdefault("justify", Justify.RIGHT)
            data.setdefault("pad", "0")
        return data

    @model_validator(mode="after")
    def validate_kind_constraints(self) -> "FieldSpec":
        numeric = self.kind == FieldKind.NUMERIC
        if self.signed and not numeric:
            raise ValueError(f"Field {self.name}: only numeric fields can be signed.")
        if self.signed and self.length < 2:
            raise ValueError(f"Field {self.name}: signed fields need room for the sign.")
        if (self.min_value is not None or self.max_value is not None) and not numeric:
            raise ValueError(f"Field {self.name}: value ranges apply to numeric fields only.")
        return self

    @property
    def end(self) -> int:
        return self.start + self.length - 1

    @property
    def offset(self) -> int:
        return self.start - 1

    @property
    def is_numeric(self) -> bool:
        return self.kind == FieldKind.NUMERIC


class RecordLayout(BaseModel):
    code: str = Field(min_length=1, max_length=1)
    name: str = Field(min_length=1)
    length: int = Field(ge=1)
    fields: list[FieldSpec] = Field(min_length=1)

    model_config = {"frozen": True}

    @field_validator("fields")
    @classmethod
    def validate_unique_field_names(cls, fields: list[FieldSpec]) -> list[FieldSpec]:
        names = [item.name for item in fields if not item.filler]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field names: {', '.join(duplicates)}")
        return fields

    @model_validator(mode="after")
    def validate_field_positions(self) -> "RecordLayout":
        selector = self.fields[0]
        if selector.name != RECORD_TYPE_FIELD or selector.start != 1 or selector.length != 1:
            raise ValueError(f"Layout {self.code}: first field must be the one-position {RECORD_TYPE_FIELD}.")
        expected_start = 1
        for item in self.fields:
            if item.start != expected_start:
                raise ValueError(
                    f"Layout {self.code}: {item.name} starts at {item.start}, expected {expected_start}."
                )
            expected_start = item.end + 1
        if expected_start - 1 != self.length:
            raise ValueError(
                f"Layout {self.code}: fields cover {expected_start - 1} positions, expected {self.length}."
            )
        return self

    @property
    def value_fields(self) -> list[FieldSpec]:
        """Fields carried in ``Record.values`` (no selector, fillers or sequence number)."""
        return [
            item
            for item in self.fields
            if not item.filler and item.name not in {RECORD_TYPE_FIELD, SEQUENCE_FIELD}
        ]

    @property
    def by_name(self) -> dict[str, FieldSpec]:
        return {item.name: item for item in self.fields if not item.filler}


@dataclass
class Record:
    """One decoded line: a field mapping tagged with its layout code."""

    code: str
    values: dict[str, Value] = field(default_factory=dict)
    sequence_number: int | None = None
    line_number: int | None = field(default=None, compare=False)

    def get(self, name: str, default: Value = None) -> Value:
        value = self.values.get(name, default)
        return default if value is None else value

    def amount(self, name: str) -> int:
        value = self.values.get(name)
        return value if isinstance(value, int) else 0

    @property
    def frozen(self) -> bool:
        return isinstance(self.values, MappingProxyType)

    def freeze(self) -> "Record":
        """Make ``values`` read-only; validated records are not edited in place."""
        if not self.frozen:
            self.values = MappingProxyType(dict(self.values))
        return self


@dataclass
class PayerGroup:
    payer: Record
    payees: list[Record] = field(default_factory=list)
    end_of_payer: Record | None = None
    state_totals: list[Record] = field(default_factory=list)

    def records(self) -> Iterator[Record]:
        yield self.payer
        yield from self.payees
        if self.end_of_payer is not None:
            yield self.end_of_payer
        yield from self.state_totals


@dataclass
class Document:
    transmitter: Record | None = None
    payers: list[PayerGroup] = field(default_factory=list)
    end_of_transmission: Record | None = None

    def records(self) -> Iterator[Record]:
        """Records in file order, as stored."""
        if self.transmitter is not None:
            yield self.transmitter
        for group in self.payers:
            yield from group.records()
        if self.end_of_transmission is not None:
            yield self.end_of_transmission

    def indexed_records(self) -> Iterator[tuple[int, Record]]:
        return enumerate(self.records(), start=1)

    def freeze(self) -> "Document":
        for record in self.records():
            record.freeze()
        return self

    @property
    def payee_count(self) -> int:
        return sum(len(group.payees) for group in self.payers)


@dataclass(frozen=True)
class Finding:
    severity: Severity
    rule: str
    message: str
    record_index: int | None = None
    field_name: str | None = None
    params: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def sort_key(self) -> tuple[int, str]:
        return (self.record_index if self.record_index is not None else 0, self.field_name or "")

    def as_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "record_index": self.record_index,
            "field_name": self.field_name,
            "rule": self.rule,
            "message": self.message,
        }
