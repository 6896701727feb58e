"""Tests for the Excel export."""

from __future__ import annotations

from openpyxl import load_workbook

from irs_pipeline.exporters import export_to_excel
from irs_pipeline.validator import validate


def test_one_sheet_per_record_type(tmp_path, valid_document):
    output = tmp_path / "report.xlsx"

    export_to_excel(valid_document, output)

    workbook = load_workbook(output)
    assert workbook.sheetnames == ["TRANSMITTER", "PAYER", "PAYEE", "END_OF_PAYER", "END_OF_TRANSMISSION"]
    payee = workbook["PAYEE"]
    headers = [cell.value for cell in payee[3]]
    assert headers[:3] == ["record_index", "payer_group", "record_type"]
    row = dict(zip(headers, [cell.value for cell in payee[4]]))
    assert row["record_index"] == 3
    assert row["payment_amount_1"] == 250000


def test_findings_sheet(tmp_path, invalid_payment_document):
    output = tmp_path / "report.xlsx"

    export_to_excel(invalid_payment_document, output, findings=validate(invalid_payment_document))

    sheet = load_workbook(output)["FINDINGS"]
    assert [cell.value for cell in sheet[3]] == ["severity", "record_index", "field_name", "rule", "message"]
    assert sheet.cell(4, 4).value == "value-range"
