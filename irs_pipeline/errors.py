from __future__ import annotations

from dataclasses import replace
from typing import Any

from .messages import DEFAULT_LOCALE, render
from .models import Finding, Severity


def make_finding(
    rule: str,
    *,
    severity: Severity = Severity.ERROR,
    record_index: int | None = None,
    field_name: str | None = None,
    locale: str = DEFAULT_LOCALE,
    **params: Any,
) -> Finding:
    if field_name is not None:
        params.setdefault("field", field_name)
    return Finding(
        severity=severity,
        rule=rule,
        message=render(rule, params, locale),
        record_index=record_index,
        field_name=field_name,
        params=params,
    )


def localize(findings: list[Finding], locale: str) -> list[Finding]:
    return [replace(item, message=render(item.rule, item.params, locale)) for item in findings]


class IrsFormatError(RuntimeError):
    """Base of the format error taxonomy; every error can become a finding."""

    rule = "format-error"

    def __init__(
        self,
        *,
        line_number: int | None = None,
        field_name: str | None = None,
        **params: Any,
    ) -> None:
        self.line_number = line_number
        self.field_name = field_name
        self.params = params
        super().__init__(self.render())

    def _params(self) -> dict[str, Any]:
        params = dict(self.params)
        if self.field_name is not None:
            params.setdefault("field", self.field_name)
        params.setdefault("line", self.line_number)
        return params

    def render(self, locale: str = DEFAULT_LOCALE) -> str:
        return render(self.rule, self._params(), locale)

    def at_line(self, line_number: int) -> "IrsFormatError":
        self.line_number = line_number
        self.args = (self.render(),)
        return self

    def to_finding(self, locale: str = DEFAULT_LOCALE) -> Finding:
        return Finding(
            severity=Severity.ERROR,
            rule=self.rule,
            message=self.render(locale),
            record_index=self.line_number,
            field_name=self.field_name,
            params=self._params(),
        )


class FieldFormatError(IrsFormatError):
    rule = "field-format"


class FieldEncodingError(FieldFormatError):
    rule = "field-charset"


class FieldTooLong(IrsFormatError):
    rule = "field-too-long"


class UnknownRecordType(IrsFormatError):
    rule = "unknown-record-type"


class RecordLengthMismatch(IrsFormatError):
    rule = "record-length"


class UnexpectedRecordOrder(IrsFormatError):
    rule = "unexpected-record-order"


class OrphanPayee(IrsFormatError):
    rule = "orphan-payee"


class MalformedDocument(IrsFormatError):
    rule = "malformed-document"

    def __init__(self, problems: list[str], **kwargs: Any) -> None:
        self.problems = list(problems)
        super().__init__(problems="; ".join(self.problems), **kwargs)
