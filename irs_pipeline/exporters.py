from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from .layouts import LAYOUTS, RECORD_NAMES
from .models import Document, Finding
from .portable import record_tree

LOGGER = logging.getLogger(__name__)

_SHEET_FINDINGS = "FINDINGS"
_RECORD_ORDER = ["T", "A", "B", "C", "K", "F"]


def _humanize_field_name(field_name: str) -> str:
    return field_name.replace("_", " ").strip()


def _safe_sheet_name(base: str, existing: set[str]) -> str:
    candidate = base[:31] or "RECORDS"
    index = 1
    while candidate in existing:
        suffix = f"_{index}"
        candidate = f"{base[: max(1, 31 - len(suffix))]}{suffix}"
        index += 1
    existing.add(candidate)
    return candidate


def _record_rows(document: Document) -> dict[str, list[dict[str, Any]]]:
    rows: dict[str, list[dict[str, Any]]] = {code: [] for code in _RECORD_ORDER}
    payer_index = 0
    for index, record in document.indexed_records():
        if record.code == "A":
            payer_index += 1
        row = {"record_index": index, "payer_group": payer_index or None}
        row.update(record_tree(record) or {})
        rows.setdefault(record.code, []).append(row)
    return rows


def _findings_frame(findings: list[Finding]) -> pd.DataFrame:
    columns = ["severity", "record_index", "field_name", "rule", "message"]
    return pd.DataFrame([item.as_dict() for item in findings], columns=columns)


def _set_column_widths(worksheet) -> None:
    from openpyxl.utils import get_column_letter

    for col_idx in range(1, worksheet.max_column + 1):
        max_len = 0
        sample_limit = min(worksheet.max_row, 3000)
        for row_idx in range(1, sample_limit + 1):
            value = worksheet.cell(row_idx, col_idx).value
            if value is None:
                continue
            max_len = max(max_len, len(str(value)))
        width = min(max(max_len + 2, 10), 54)
        worksheet.column_dimensions[get_column_letter(col_idx)].width = width


def _style_data_sheet(worksheet, sheet_title: str, record_count: int, generated_at: str) -> None:
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    if worksheet.max_column < 1:
        return

    header_row = 3
    data_start_row = 4
    max_col = worksheet.max_column
    max_row = worksheet.max_row

    worksheet.sheet_view.showGridLines = False
    worksheet.freeze_panes = f"A{data_start_row}"
    worksheet.merge_cells(start_row=1, start_column=1, end_row=1, end_column=max(max_col, 1))
    worksheet["A1"] = sheet_title
    worksheet["A2"] = f"Generated: {generated_at} | Records: {record_count:,}"
    worksheet["A1"].font = Font(color="FFFFFF", bold=True, size=13, name="Calibri")
    worksheet["A1"].fill = PatternFill(fill_type="solid", fgColor="0B1F33")
    worksheet["A1"].alignment = Alignment(horizontal="left", vertical="center")

    header_fill = PatternFill(fill_type="solid", fgColor="0F766E")
    header_font = Font(color="FFFFFF", bold=True)
    stripe_fill = PatternFill(fill_type="solid", fgColor="F6FAFF")
    for col_idx in range(1, max_col + 1):
        cell = worksheet.cell(header_row, col_idx)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for row_idx in range(data_start_row, max_row + 1):
        if row_idx % 2 == 0:
            for col_idx in range(1, max_col + 1):
                worksheet.cell(row_idx, col_idx).fill = stripe_fill

    for col_idx in range(1, max_col + 1):
        header_name = str(worksheet.cell(header_row, col_idx).value or "")
        if header_name.startswith(("payment_amount_", "control_total_")) or header_name.endswith("_withheld"):
            for row_idx in range(data_start_row, max_row + 1):
                worksheet.cell(row_idx, col_idx).number_format = "#,##0"

    _set_column_widths(worksheet)

    if max_row >= data_start_row:
        worksheet.auto_filter.ref = f"A{header_row}:{get_column_letter(max_col)}{max_row}"


def export_to_excel(document: Document, output_path: Path, findings: list[Finding] | None = None) -> None:
    """One sheet per record type, plus the findings when given."""
    rows = _record_rows(document)
    if not any(rows.values()):
        raise ValueError("No records to export to Excel.")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    generated_at = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    existing: set[str] = {_SHEET_FINDINGS}
    sheet_specs: list[tuple[str, str, int]] = []

    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        for code in _RECORD_ORDER:
            record_rows = rows.get(code) or []
            if not record_rows:
                continue
            frame = pd.DataFrame(record_rows)
            sheet_name = _safe_sheet_name(RECORD_NAMES[code].upper(), existing)
            frame.to_excel(writer, index=False, sheet_name=sheet_name, startrow=2)
            title = f"{code} - {_humanize_field_name(LAYOUTS[code].name).title()}"
            sheet_specs.append((sheet_name, title, len(frame)))

        if findings is not None:
            frame = _findings_frame(findings)
            frame.to_excel(writer, index=False, sheet_name=_SHEET_FINDINGS, startrow=2)
            sheet_specs.append((_SHEET_FINDINGS, "Validation findings", len(frame)))

        for sheet_name, title, count in sheet_specs:
            _style_data_sheet(writer.book[sheet_name], title, count, generated_at)

    LOGGER.info("Excel exported to %s", output_path)
