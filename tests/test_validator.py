"""Tests for business-rule validation."""

from __future__ import annotations

import copy

import pytest

from irs_pipeline.models import Record, Severity
from irs_pipeline.validator import DEFAULT_CATEGORIES, Validator, findings_payload, has_errors, validate


def _rules(findings):
    return [item.rule for item in findings]


def test_minimal_valid_file_has_no_findings(valid_document):
    assert validate(valid_document) == []


def test_invalid_payment_is_one_range_error_on_the_payee(invalid_payment_document):
    findings = validate(invalid_payment_document)

    assert len(findings) == 1
    finding = findings[0]
    assert finding.severity == Severity.ERROR
    assert finding.rule == "value-range"
    assert finding.record_index == 3
    assert finding.field_name == "payment_amount_1"
    assert "-5000" in finding.message


def test_validation_is_deterministic_and_read_only(invalid_payment_document):
    snapshot = copy.deepcopy(invalid_payment_document)

    first = validate(invalid_payment_document)
    second = validate(invalid_payment_document)

    assert first == second
    assert invalid_payment_document == snapshot


def test_findings_are_sorted_by_record_then_field(valid_document):
    valid_document.payers[0].payer.values["payer_city"] = ""
    valid_document.payers[0].payees[0].values["payee_city"] = ""
    valid_document.transmitter.values["company_name"] = ""

    findings = validate(valid_document, categories=["field"])

    assert [(item.record_index, item.field_name) for item in findings] == [
        (1, "company_name"),
        (2, "payer_city"),
        (3, "payee_city"),
    ]
    assert set(_rules(findings)) == {"required"}


def test_unavailable_category_yields_a_warning(valid_document):
    findings = validate(valid_document, categories=["name-control"])

    assert len(findings) == 1
    assert findings[0].severity == Severity.WARNING
    assert findings[0].rule == "rule-not-available"
    assert findings[0].record_index is None
    assert not has_errors(findings)


def test_category_subset_runs_only_those_rules(valid_document):
    valid_document.payers[0].end_of_payer.values["number_of_payees"] = 5
    valid_document.payers[0].payees[0].values["payee_tin"] = "111111111"

    assert _rules(validate(valid_document, categories=["tin"])) == ["tin-format"]
    assert _rules(validate(valid_document, categories=["cross-record"])) == ["payee-count"]


def test_allowed_value_and_field_width(valid_document):
    payer = valid_document.payers[0].payer
    payer.values["type_of_return"] = "ZZ"
    payer.values["payer_name_control"] = "TOOLONG"

    findings = validate(valid_document, categories=["field"])

    assert {(item.rule, item.field_name) for item in findings} == {
        ("allowed-value", "type_of_return"),
        ("field-width", "payer_name_control"),
    }


def test_invalid_and_duplicate_amount_codes(valid_document):
    valid_document.payers[0].payer.values["amount_codes"] = "11Z"

    rules = _rules(validate(valid_document, categories=["field", "record"]))

    assert "amount-codes" in rules
    assert "amount-codes-duplicate" in rules


def test_vendor_indicator_requires_vendor_block(valid_document):
    valid_document.transmitter.values["vendor_indicator"] = "V"

    findings = validate(valid_document, categories=["record"])

    assert {item.field_name for item in findings} == {
        "vendor_name",
        "vendor_mailing_address",
        "vendor_city",
        "vendor_contact_name",
        "vendor_contact_telephone_number",
    }


def test_domestic_address_checks_state_and_zip(valid_document):
    payee = valid_document.payers[0].payees[0]
    payee.values["payee_state"] = "XX"
    payee.values["payee_zip_code"] = "1234"

    findings = validate(valid_document, categories=["record"])
    assert {item.field_name for item in findings} == {"payee_state", "payee_zip_code"}

    payee.values["foreign_country_indicator"] = "1"
    assert validate(valid_document, categories=["record"]) == []


def test_control_total_mismatch(valid_document):
    valid_document.payers[0].end_of_payer.values["control_total_1"] = 100

    findings = validate(valid_document)

    assert _rules(findings) == ["control-total"]
    assert findings[0].record_index == 4
    assert findings[0].params["declared"] == 100
    assert findings[0].params["actual"] == 250000


def test_amount_in_undeclared_slot(valid_document):
    valid_document.payers[0].payees[0].values["payment_amount_2"] = 10
    valid_document.payers[0].end_of_payer.values["control_total_2"] = 10

    findings = validate(valid_document)

    assert _rules(findings) == ["undeclared-amount"]
    assert findings[0].field_name == "payment_amount_2"


def test_count_mismatches_on_summary_records(valid_document):
    valid_document.transmitter.values["total_number_of_payees"] = 2
    valid_document.end_of_transmission.values["number_of_a_records"] = 2
    valid_document.end_of_transmission.values["total_number_of_payees"] = 3

    findings = validate(valid_document, categories=["cross-record"])

    assert [(item.record_index, item.rule) for item in findings] == [
        (1, "total-payees"),
        (5, "a-record-count"),
        (5, "total-payees"),
    ]


def test_payer_without_payees(valid_document):
    group = valid_document.payers[0]
    group.payees.clear()
    group.end_of_payer.values["number_of_payees"] = 0
    group.end_of_payer.values["control_total_1"] = 0
    valid_document.transmitter.values["total_number_of_payees"] = 0
    valid_document.end_of_transmission.values["total_number_of_payees"] = 0
    valid_document.payers[0].end_of_payer.sequence_number = 3
    valid_document.end_of_transmission.sequence_number = 4

    assert _rules(validate(valid_document)) == ["payer-without-payees"]


def test_sequence_and_payment_year(valid_document):
    valid_document.payers[0].payees[0].sequence_number = 9
    valid_document.payers[0].payees[0].values["payment_year"] = 2022

    findings = validate(valid_document, categories=["cross-record"])

    assert [(item.rule, item.params["expected"]) for item in findings] == [
        ("payment-year", 2023),
        ("sequence-number", 3),
    ]


def test_state_totals_are_reconciled_against_state_payees(valid_document):
    group = valid_document.payers[0]
    group.payer.values["combined_federal_state_filer"] = "1"
    group.payees[0].values["combined_federal_state_code"] = "19"
    group.payees[0].values["state_income_tax_withheld"] = 1200
    group.state_totals.append(
        Record(
            code="K",
            values={
                "number_of_payees": 1,
                "control_total_1": 250000,
                "state_income_tax_withheld_total": 1000,
                "combined_federal_state_code": "19",
            },
            sequence_number=5,
        )
    )
    valid_document.end_of_transmission.sequence_number = 6

    findings = validate(valid_document)

    assert _rules(findings) == ["state-totals-amount"]
    assert findings[0].field_name == "state_income_tax_withheld_total"
    assert findings[0].record_index == 5


def test_state_totals_need_a_combined_filer(valid_document):
    group = valid_document.payers[0]
    group.state_totals.append(
        Record(code="K", values={"number_of_payees": 0, "combined_federal_state_code": "06"}, sequence_number=5)
    )
    valid_document.end_of_transmission.sequence_number = 6

    assert _rules(validate(valid_document, categories=["cross-record"])) == ["state-totals-filer"]


def test_tin_rules_follow_type_of_tin(valid_document):
    payee = valid_document.payers[0].payees[0]
    payee.values["payee_tin"] = "000123456"
    assert _rules(validate(valid_document, categories=["tin"])) == ["ssn-format"]

    payee.values["type_of_tin"] = "1"
    payee.values["payee_tin"] = "070123456"
    assert _rules(validate(valid_document, categories=["tin"])) == ["ein-prefix"]

    payee.values["payee_tin"] = "12-345678"
    assert _rules(validate(valid_document, categories=["tin"])) == ["tin-format"]


def test_messages_follow_the_locale(invalid_payment_document):
    english = Validator().validate(invalid_payment_document)
    french = Validator(locale="fr").validate(invalid_payment_document)

    assert english[0].rule == french[0].rule
    assert english[0].message.startswith("Field")
    assert french[0].message.startswith("Champ")


def test_findings_payload_splits_severity(valid_document):
    valid_document.end_of_transmission.values["number_of_a_records"] = 4
    findings = validate(valid_document, categories=[*DEFAULT_CATEGORIES, "name-control"])

    payload = findings_payload(findings)

    assert [item["rule"] for item in payload["errors"]] == ["a-record-count"]
    assert [item["rule"] for item in payload["warnings"]] == ["rule-not-available"]
    assert payload["errors"][0]["record_index"] == 5


def test_frozen_document_validates_the_same(invalid_payment_document):
    expected = validate(invalid_payment_document)
    invalid_payment_document.freeze()

    payee = invalid_payment_document.payers[0].payees[0]
    assert payee.frozen
    with pytest.raises(TypeError):
        payee.values["payment_amount_1"] = 0
    assert validate(invalid_payment_document) == expected


def test_unnumbered_minimal_document_is_valid(testdata):
    import json

    from irs_pipeline.portable import from_portable

    tree = json.loads((testdata / "oneTransactionFile.json").read_text())
    for record in [
        tree["transmitter"],
        tree["payers"][0]["payer"],
        *tree["payers"][0]["payees"],
        tree["payers"][0]["end_of_payer"],
        tree["end_of_transmission"],
    ]:
        del record["record_sequence_number"]

    assert validate(from_portable(tree)) == []


def test_text_outside_the_output_charset(valid_document):
    valid_document.payers[0].payees[0].values["first_payee_name_line"] = "ŁUKASZ NOWAK"

    findings = validate(valid_document)

    assert [(item.rule, item.record_index, item.field_name) for item in findings] == [
        ("field-charset", 3, "first_payee_name_line"),
    ]
    assert validate(valid_document, encoding="utf-8") == []
