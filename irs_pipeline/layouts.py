"""Publication 1220 record layouts (transmitter, payer, payee and summary records).

Positions follow the IRS FIRE layouts: every record is 750 positions, the record
type sits in position 1 and the record sequence number in positions 500-507.
Positions 749-750 are blank or carry the CR/LF terminator.
"""

from __future__ import annotations

import logging
from typing import Any

from .models import RECORD_TYPE_FIELD, SEQUENCE_FIELD, FieldKind, FieldSpec, RecordLayout

LOGGER = logging.getLogger(__name__)

RECORD_LENGTH = 750

TRANSMITTER = "T"
PAYER = "A"
PAYEE = "B"
END_OF_PAYER = "C"
STATE_TOTALS = "K"
END_OF_TRANSMISSION = "F"

RECORD_NAMES = {
    TRANSMITTER: "transmitter",
    PAYER: "payer",
    PAYEE: "payee",
    END_OF_PAYER: "end_of_payer",
    STATE_TOTALS: "state_totals",
    END_OF_TRANSMISSION: "end_of_transmission",
}

# Payment amount slots, in record order. Amount codes on the payer record use the
# upper-case code; field names use the lower-case suffix.
AMOUNT_CODES = "123456789ABCDEFGHJ"


def amount_field(code: str) -> str:
    return f"payment_amount_{code.lower()}"


def control_total_field(code: str) -> str:
    return f"control_total_{code.lower()}"


TYPE_OF_RETURN_CODES = {
    "BT": "1097-BTC",
    "3": "1098",
    "X": "1098-C",
    "2": "1098-E",
    "1": "1099-DIV",
    "8": "1098-T",
    "4": "1099-A",
    "B": "1099-B",
    "5": "1099-C",
    "P": "1099-CAP",
    "F": "1099-G",
    "6": "1099-INT",
    "MC": "1099-K",
    "LS": "1099-LS",
    "T": "1099-LTC",
    "A": "1099-MISC",
    "NE": "1099-NEC",
    "D": "1099-OID",
    "7": "1099-PATR",
    "Q": "1099-Q",
    "9": "1099-R",
    "S": "1099-S",
    "M": "1099-SA",
    "SB": "1099-SB",
    "N": "3921",
    "Z": "3922",
    "L": "5498",
    "V": "5498-ESA",
    "K": "5498-SA",
    "W": "W-2G",
}

# Combined Federal/State Filing Program participants.
COMBINED_FEDERAL_STATE_CODES = {
    "01": "Alabama",
    "04": "Arizona",
    "05": "Arkansas",
    "06": "California",
    "07": "Colorado",
    "08": "Connecticut",
    "10": "Delaware",
    "11": "District of Columbia",
    "13": "Georgia",
    "15": "Hawaii",
    "16": "Idaho",
    "18": "Indiana",
    "19": "Iowa",
    "20": "Kansas",
    "21": "Kentucky",
    "22": "Louisiana",
    "23": "Maine",
    "24": "Maryland",
    "25": "Massachusetts",
    "26": "Michigan",
    "27": "Minnesota",
    "28": "Mississippi",
    "29": "Missouri",
    "30": "Montana",
    "31": "Nebraska",
    "33": "New Hampshire",
    "34": "New Jersey",
    "35": "New Mexico",
    "37": "North Carolina",
    "38": "North Dakota",
    "39": "Ohio",
    "40": "Oklahoma",
    "45": "South Carolina",
    "55": "Wisconsin",
}

US_STATE_CODES = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL", "GA", "HI", "ID", "IL", "IN",
        "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH",
        "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD", "TN", "TX", "UT",
        "VT", "VA", "WA", "WV", "WI", "WY", "AS", "FM", "GU", "MH", "MP", "PW", "PR", "VI", "AA",
        "AE", "AP",
    }
)


def _text(name: str, length: int, **options: Any) -> dict[str, Any]:
    return {"name": name, "length": length, "kind": FieldKind.ALPHANUMERIC, **options}


def _flag(name: str, *values: str, **options: Any) -> dict[str, Any]:
    return _text(name, 1, allowed_values=frozenset(values), **options)


def _number(name: str, length: int, **options: Any) -> dict[str, Any]:
    return {"name": name, "length": length, "kind": FieldKind.NUMERIC, **options}


def _blank(length: int) -> dict[str, Any]:
    return _text("blank", length, filler=True)


def _zeros(length: int) -> dict[str, Any]:
    return _number("zero", length, filler=True)


def _payment_year() -> dict[str, Any]:
    return _number("payment_year", 4, required=True, min_value=1990, max_value=2099)


def _sequence() -> dict[str, Any]:
    return _number(SEQUENCE_FIELD, 8, description="Record sequence number")


def _amounts() -> list[dict[str, Any]]:
    return [_number(amount_field(code), 12, signed=True, min_value=0) for code in AMOUNT_CODES]


def _control_totals() -> list[dict[str, Any]]:
    return [_number(control_total_field(code), 18, signed=True) for code in AMOUNT_CODES]


def _build_layout(code: str, parts: list[dict[str, Any]]) -> RecordLayout:
    fields: list[FieldSpec] = [
        FieldSpec(
            name=RECORD_TYPE_FIELD,
            start=1,
            length=1,
            required=True,
            allowed_values=frozenset({code}),
        )
    ]
    start = 2
    for part in parts:
        spec = FieldSpec(start=start, **part)
        fields.append(spec)
        start = spec.end + 1
    return RecordLayout(code=code, name=RECORD_NAMES[code], length=RECORD_LENGTH, fields=fields)


def _transmitter_layout() -> RecordLayout:
    return _build_layout(
        TRANSMITTER,
        [
            _payment_year(),
            _flag("prior_year_data_indicator", "P"),
            _text("transmitter_tin", 9, required=True),
            _text("transmitter_control_code", 5, required=True),
            _blank(7),
            _flag("test_file_indicator", "T"),
            _flag("foreign_entity_indicator", "1"),
            _text("transmitter_name", 40, required=True),
            _text("transmitter_name_continuation", 40),
            _text("company_name", 40, required=True),
            _text("company_name_continuation", 40),
            _text("company_mailing_address", 40, required=True),
            _text("company_city", 40, required=True),
            _text("company_state", 2),
            _text("company_zip_code", 9),
            _blank(15),
            _number("total_number_of_payees", 8),
            _text("contact_name", 40, required=True),
            _text("contact_telephone_number", 15, required=True),
            _text("contact_email_address", 50),
            _blank(91),
            _sequence(),
            _blank(10),
            _flag("vendor_indicator", "V", "I", required=True),
            _text("vendor_name", 40),
            _text("vendor_mailing_address", 40),
            _text("vendor_city", 40),
            _text("vendor_state", 2),
            _text("vendor_zip_code", 9),
            _text("vendor_contact_name", 40),
            _text("vendor_contact_telephone_number", 15),
            _blank(35),
            _flag("vendor_foreign_entity_indicator", "1"),
            _blank(8),
            _blank(2),
        ],
    )


def _payer_layout() -> RecordLayout:
    return _build_layout(
        PAYER,
        [
            _payment_year(),
            _flag("combined_federal_state_filer", "1"),
            _blank(5),
            _text("payer_tin", 9, required=True),
            _text("payer_name_control", 4),
            _flag("last_filing_indicator", "1"),
            _text("type_of_return", 2, required=True, allowed_values=frozenset(TYPE_OF_RETURN_CODES)),
            _text("amount_codes", 18, required=True),
            _blank(6),
            _flag("foreign_entity_indicator", "1"),
            _text("first_payer_name_line", 40, required=True),
            _text("second_payer_name_line", 40),
            _flag("transfer_agent_indicator", "0", "1", required=True),
            _text("payer_shipping_address", 40, required=True),
            _text("payer_city", 40, required=True),
            _text("payer_state", 2),
            _text("payer_zip_code", 9),
            _text("payer_telephone_number", 15),
            _blank(260),
            _sequence(),
            _blank(241),
            _blank(2),
        ],
    )


def _payee_layout() -> RecordLayout:
    return _build_layout(
        PAYEE,
        [
            _payment_year(),
            _flag("corrected_return_indicator", "G", "C"),
            _text("name_control", 4),
            _flag("type_of_tin", "1", "2"),
            _text("payee_tin", 9, required=True),
            _text("payer_account_number_for_payee", 20),
            _text("payer_office_code", 4),
            _blank(10),
            *_amounts(),
            _blank(16),
            _flag("foreign_country_indicator", "1"),
            _text("first_payee_name_line", 40, required=True),
            _text("second_payee_name_line", 40),
            _text("payee_mailing_address", 40, required=True),
            _blank(40),
            _text("payee_city", 40, required=True),
            _text("payee_state", 2),
            _text("payee_zip_code", 9),
            _blank(1),
            _sequence(),
            _blank(36),
            _flag("second_tin_notice", "2"),
            _blank(2),
            _flag("direct_sales_indicator", "1"),
            _flag("fatca_filing_requirement_indicator", "1"),
            _blank(114),
            _text("special_data_entries", 60),
            _number("state_income_tax_withheld", 12, min_value=0),
            _number("local_income_tax_withheld", 12, min_value=0),
            _text(
                "combined_federal_state_code",
                2,
                allowed_values=frozenset(COMBINED_FEDERAL_STATE_CODES),
            ),
            _blank(2),
        ],
    )


def _end_of_payer_layout() -> RecordLayout:
    return _build_layout(
        END_OF_PAYER,
        [
            _number("number_of_payees", 8, required=True),
            _blank(6),
            *_control_totals(),
            _blank(160),
            _sequence(),
            _blank(241),
            _blank(2),
        ],
    )


def _state_totals_layout() -> RecordLayout:
    return _build_layout(
        STATE_TOTALS,
        [
            _number("number_of_payees", 8, required=True),
            _blank(6),
            *_control_totals(),
            _blank(160),
            _sequence(),
            _blank(199),
            _number("state_income_tax_withheld_total", 18, min_value=0),
            _number("local_income_tax_withheld_total", 18, min_value=0),
            _blank(4),
            _text(
                "combined_federal_state_code",
                2,
                required=True,
                allowed_values=frozenset(COMBINED_FEDERAL_STATE_CODES),
            ),
            _blank(2),
        ],
    )


def _end_of_transmission_layout() -> RecordLayout:
    return _build_layout(
        END_OF_TRANSMISSION,
        [
            _number("number_of_a_records", 8, required=True),
            _zeros(21),
            _blank(19),
            _number("total_number_of_payees", 8),
            _blank(442),
            _sequence(),
            _blank(241),
            _blank(2),
        ],
    )


def build_layouts() -> dict[str, RecordLayout]:
    layouts = [
        _transmitter_layout(),
        _payer_layout(),
        _payee_layout(),
        _end_of_payer_layout(),
        _state_totals_layout(),
        _end_of_transmission_layout(),
    ]
    LOGGER.debug("Built %s record layouts", len(layouts))
    return {layout.code: layout for layout in layouts}


LAYOUTS: dict[str, RecordLayout] = build_layouts()


def layout_for(code: str) -> RecordLayout | None:
    return LAYOUTS.get(code)
