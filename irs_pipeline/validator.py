"""Business-rule validation of an assembled document.

Validation never raises and never mutates the document: every rule that applies
runs, and the result is a list of findings sorted by record position. Rules are
grouped into categories so callers can ask for a subset; a requested category
that the engine does not implement yields a ``rule-not-available`` warning
instead of being skipped silently.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from .errors import make_finding
from .field_codec import DEFAULT_ENCODING, encodable, fits
from .layouts import (
    AMOUNT_CODES,
    LAYOUTS,
    PAYEE,
    PAYER,
    TRANSMITTER,
    US_STATE_CODES,
    amount_field,
    control_total_field,
)
from .messages import DEFAULT_LOCALE
from .models import SEQUENCE_FIELD, Document, Finding, PayerGroup, Record, RecordLayout, Severity
from .tin import tin_problem

LOGGER = logging.getLogger(__name__)

FIELD_RULES = "field"
RECORD_RULES = "record"
CROSS_RECORD_RULES = "cross-record"
TIN_RULES = "tin"
NAME_CONTROL_RULES = "name-control"

DEFAULT_CATEGORIES = (FIELD_RULES, RECORD_RULES, CROSS_RECORD_RULES, TIN_RULES)
# Categories the format defines but this engine cannot check (name controls need
# the IRS TIN matching service).
UNAVAILABLE_CATEGORIES = (NAME_CONTROL_RULES,)

_VENDOR_FIELDS = (
    "vendor_name",
    "vendor_mailing_address",
    "vendor_city",
    "vendor_contact_name",
    "vendor_contact_telephone_number",
)

# record code -> (foreign indicator, state field, zip field)
_ADDRESS_FIELDS = {
    TRANSMITTER: ("foreign_entity_indicator", "company_state", "company_zip_code"),
    PAYER: ("foreign_entity_indicator", "payer_state", "payer_zip_code"),
    PAYEE: ("foreign_country_indicator", "payee_state", "payee_zip_code"),
}

_TIN_FIELDS = {
    TRANSMITTER: "transmitter_tin",
    PAYER: "payer_tin",
    PAYEE: "payee_tin",
}


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


class _Run:
    """State of one validation call: record positions and collected findings."""

    def __init__(self, document: Document, locale: str) -> None:
        self.document = document
        self.locale = locale
        self.records = list(document.indexed_records())
        self._positions = {id(record): index for index, record in self.records}
        self.findings: list[Finding] = []

    def index_of(self, record: Record) -> int | None:
        return self._positions.get(id(record))

    def add(
        self,
        rule: str,
        record: Record | None = None,
        field_name: str | None = None,
        severity: Severity = Severity.ERROR,
        **params: Any,
    ) -> None:
        self.findings.append(
            make_finding(
                rule,
                severity=severity,
                record_index=self.index_of(record) if record is not None else None,
                field_name=field_name,
                locale=self.locale,
                **params,
            )
        )


class Validator:
    def __init__(
        self,
        layouts: dict[str, RecordLayout] | None = None,
        locale: str = DEFAULT_LOCALE,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        self.layouts = LAYOUTS if layouts is None else layouts
        self.locale = locale
        self.encoding = encoding
        self._rules: dict[str, Callable[[_Run], None]] = {
            FIELD_RULES: self._field_rules,
            RECORD_RULES: self._record_rules,
            CROSS_RECORD_RULES: self._cross_record_rules,
            TIN_RULES: self._tin_rules,
        }

    @property
    def categories(self) -> list[str]:
        return list(self._rules)

    def validate(self, document: Document, categories: Iterable[str] | None = None) -> list[Finding]:
        run = _Run(document, self.locale)
        requested = list(DEFAULT_CATEGORIES if categories is None else dict.fromkeys(categories))

        for category in requested:
            rules = self._rules.get(category)
            if rules is None:
                run.add("rule-not-available", severity=Severity.WARNING, category=category)
                continue
            rules(run)

        findings = sorted(run.findings, key=Finding.sort_key)
        errors = sum(1 for item in findings if item.is_error)
        LOGGER.info("Validation finished: %s error(s), %s warning(s).", errors, len(findings) - errors)
        return findings

    # Field level

    def _field_rules(self, run: _Run) -> None:
        for _, record in run.records:
            layout = self.layouts.get(record.code)
            if layout is None:
                continue
            for spec in layout.value_fields:
                value = record.values.get(spec.name)
                if _is_blank(value):
                    if spec.required:
                        run.add("required", record, spec.name)
                    continue
                if isinstance(value, str) and not encodable(value, self.encoding):
                    run.add("field-charset", record, spec.name, value=value, encoding=self.encoding)
                    continue
                if not fits(value, spec, self.encoding):
                    run.add("field-width", record, spec.name, value=value, length=spec.length)
                    continue
                if spec.allowed_values is not None and value not in spec.allowed_values:
                    run.add(
                        "allowed-value",
                        record,
                        spec.name,
                        value=value,
                        allowed=", ".join(sorted(spec.allowed_values)),
                    )
                if spec.is_numeric and not self._in_range(value, spec.min_value, spec.max_value):
                    run.add(
                        "value-range",
                        record,
                        spec.name,
                        value=value,
                        minimum=spec.min_value if spec.min_value is not None else -(10 ** (spec.length - 1) - 1),
                        maximum=spec.max_value if spec.max_value is not None else 10**spec.length - 1,
                    )

            if record.code == PAYER:
                codes = record.values.get("amount_codes")
                if isinstance(codes, str) and codes:
                    invalid = sorted({code for code in codes if code not in AMOUNT_CODES})
                    if invalid:
                        run.add("amount-codes", record, "amount_codes", value=codes, invalid="".join(invalid))

    @staticmethod
    def _in_range(value: int, minimum: int | None, maximum: int | None) -> bool:
        if minimum is not None and value < minimum:
            return False
        if maximum is not None and value > maximum:
            return False
        return True

    # Record level

    def _record_rules(self, run: _Run) -> None:
        for _, record in run.records:
            if record.code == TRANSMITTER and record.values.get("vendor_indicator") == "V":
                for name in _VENDOR_FIELDS:
                    if _is_blank(record.values.get(name)):
                        run.add("vendor-data", record, name)

            if record.code in _ADDRESS_FIELDS:
                self._domestic_address(run, record, *_ADDRESS_FIELDS[record.code])

            if record.code == PAYER:
                codes = record.values.get("amount_codes")
                if isinstance(codes, str):
                    duplicates = sorted({code for code in codes if codes.count(code) > 1})
                    if duplicates:
                        run.add(
                            "amount-codes-duplicate",
                            record,
                            "amount_codes",
                            value=codes,
                            duplicates="".join(duplicates),
                        )

    @staticmethod
    def _domestic_address(run: _Run, record: Record, foreign_field: str, state_field: str, zip_field: str) -> None:
        if record.values.get(foreign_field) == "1":
            return
        state = record.values.get(state_field)
        if state not in US_STATE_CODES:
            run.add("domestic-address", record, state_field, value=state or "", what="state code")
        zip_code = record.values.get(zip_field)
        if not (isinstance(zip_code, str) and len(zip_code) in (5, 9) and zip_code.isascii() and zip_code.isdigit()):
            run.add("domestic-address", record, zip_field, value=zip_code or "", what="ZIP code")

    # Cross record

    def _cross_record_rules(self, run: _Run) -> None:
        document = run.document
        if document.transmitter is None:
            run.add("missing-record", kind="transmitter")
        if not document.payers:
            run.add("missing-record", kind="payer")
        if document.end_of_transmission is None:
            run.add("missing-record", kind="end_of_transmission")

        for group in document.payers:
            self._payer_group(run, group)

        payee_total = document.payee_count
        transmitter = document.transmitter
        if transmitter is not None:
            declared = transmitter.values.get("total_number_of_payees")
            if declared is not None and declared != payee_total:
                run.add("total-payees", transmitter, "total_number_of_payees", declared=declared, actual=payee_total)

        terminator = document.end_of_transmission
        if terminator is not None:
            declared = terminator.values.get("number_of_a_records")
            if declared is not None and declared != len(document.payers):
                run.add(
                    "a-record-count",
                    terminator,
                    "number_of_a_records",
                    declared=declared,
                    actual=len(document.payers),
                )
            declared = terminator.values.get("total_number_of_payees")
            if declared is not None and declared != payee_total:
                run.add("total-payees", terminator, "total_number_of_payees", declared=declared, actual=payee_total)

        self._payment_years(run)
        self._sequence_numbers(run)

    def _payer_group(self, run: _Run, group: PayerGroup) -> None:
        payer = group.payer
        if not group.payees:
            run.add("payer-without-payees", payer, payer=payer.values.get("first_payer_name_line") or "")

        declared_codes = payer.values.get("amount_codes")
        declared_codes = declared_codes if isinstance(declared_codes, str) else ""
        for payee in group.payees:
            for code in AMOUNT_CODES:
                name = amount_field(code)
                value = payee.amount(name)
                if value != 0 and code not in declared_codes:
                    run.add("undeclared-amount", payee, name, slot=code, value=value)

        end_of_payer = group.end_of_payer
        if end_of_payer is None:
            run.add("missing-record", payer, kind="end_of_payer")
        else:
            declared = end_of_payer.values.get("number_of_payees")
            if declared != len(group.payees):
                run.add("payee-count", end_of_payer, "number_of_payees", declared=declared, actual=len(group.payees))
            self._control_totals(run, end_of_payer, group.payees, "control-total")

        for state_totals in group.state_totals:
            self._state_totals(run, payer, group.payees, state_totals)

    @staticmethod
    def _control_totals(run: _Run, summary: Record, payees: list[Record], rule: str, **params: Any) -> None:
        for code in AMOUNT_CODES:
            name = control_total_field(code)
            declared = summary.amount(name)
            actual = sum(payee.amount(amount_field(code)) for payee in payees)
            if declared != actual:
                run.add(rule, summary, name, slot=code, declared=declared, actual=actual, **params)

    def _state_totals(self, run: _Run, payer: Record, payees: list[Record], state_totals: Record) -> None:
        if payer.values.get("combined_federal_state_filer") != "1":
            run.add("state-totals-filer", state_totals, "combined_federal_state_code")

        state = state_totals.values.get("combined_federal_state_code")
        state_payees = [payee for payee in payees if payee.values.get("combined_federal_state_code") == state]
        declared = state_totals.values.get("number_of_payees")
        if declared != len(state_payees):
            run.add(
                "state-totals-count",
                state_totals,
                "number_of_payees",
                state=state,
                declared=declared,
                actual=len(state_payees),
            )
        self._control_totals(run, state_totals, state_payees, "state-totals-amount", state=state)

        for total_name, payee_name in (
            ("state_income_tax_withheld_total", "state_income_tax_withheld"),
            ("local_income_tax_withheld_total", "local_income_tax_withheld"),
        ):
            declared_total = state_totals.amount(total_name)
            actual_total = sum(payee.amount(payee_name) for payee in state_payees)
            if declared_total != actual_total:
                run.add(
                    "state-totals-amount",
                    state_totals,
                    total_name,
                    state=state,
                    slot=payee_name,
                    declared=declared_total,
                    actual=actual_total,
                )

    @staticmethod
    def _payment_years(run: _Run) -> None:
        transmitter = run.document.transmitter
        if transmitter is None:
            return
        expected = transmitter.values.get("payment_year")
        if not isinstance(expected, int):
            return
        for _, record in run.records:
            if record.code not in (PAYER, PAYEE):
                continue
            value = record.values.get("payment_year")
            if isinstance(value, int) and value != expected:
                run.add("payment-year", record, "payment_year", value=value, expected=expected)

    @staticmethod
    def _sequence_numbers(run: _Run) -> None:
        for index, record in run.records:
            # Unnumbered records (JSON input) are numbered by flatten on encode.
            if record.sequence_number is not None and record.sequence_number != index:
                run.add("sequence-number", record, SEQUENCE_FIELD, value=record.sequence_number, expected=index)

    # Taxpayer identifiers

    def _tin_rules(self, run: _Run) -> None:
        for _, record in run.records:
            name = _TIN_FIELDS.get(record.code)
            if name is None:
                continue
            tin = record.values.get(name)
            if not isinstance(tin, str) or tin == "":
                continue
            tin_type = record.values.get("type_of_tin") if record.code == PAYEE else ""
            problem = tin_problem(tin, tin_type or "")
            if problem is not None:
                run.add(problem, record, name, value=tin)


def validate(
    document: Document,
    categories: Iterable[str] | None = None,
    locale: str = DEFAULT_LOCALE,
    encoding: str = DEFAULT_ENCODING,
) -> list[Finding]:
    return Validator(locale=locale, encoding=encoding).validate(document, categories)


def has_errors(findings: list[Finding]) -> bool:
    return any(item.is_error for item in findings)


def findings_payload(findings: list[Finding]) -> dict[str, list[dict[str, Any]]]:
    return {
        "errors": [item.as_dict() for item in findings if item.is_error],
        "warnings": [item.as_dict() for item in findings if not item.is_error],
    }
