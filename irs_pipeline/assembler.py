from __future__ import annotations

import logging
from dataclasses import replace

from .errors import IrsFormatError, MalformedDocument, OrphanPayee, UnexpectedRecordOrder
from .layouts import (
    END_OF_PAYER,
    END_OF_TRANSMISSION,
    PAYEE,
    PAYER,
    RECORD_NAMES,
    STATE_TOTALS,
    TRANSMITTER,
)
from .models import Document, PayerGroup, Record

LOGGER = logging.getLogger(__name__)

END_OF_FILE = "end of file"

# Last accepted record code -> codes allowed next. None is the start state.
TRANSITIONS: dict[str | None, tuple[str, ...]] = {
    None: (TRANSMITTER,),
    TRANSMITTER: (PAYER,),
    PAYER: (PAYEE, END_OF_PAYER),
    PAYEE: (PAYEE, END_OF_PAYER),
    END_OF_PAYER: (STATE_TOTALS, PAYER, END_OF_TRANSMISSION),
    STATE_TOTALS: (STATE_TOTALS, PAYER, END_OF_TRANSMISSION),
    END_OF_TRANSMISSION: (),
}


def _describe(codes: tuple[str, ...]) -> str:
    if not codes:
        return END_OF_FILE
    return ", ".join(f"{code} ({RECORD_NAMES[code]})" for code in codes)


def assemble(records: list[Record]) -> tuple[Document, list[IrsFormatError]]:
    """Build the document hierarchy from records in file order.

    Records that break the expected order are reported and skipped; the returned
    document holds everything that could be placed.
    """
    document = Document()
    issues: list[IrsFormatError] = []
    current: PayerGroup | None = None
    last: str | None = None

    for record in records:
        allowed = TRANSITIONS[last]
        if record.code not in allowed:
            if record.code == PAYEE and not document.payers:
                issues.append(OrphanPayee(line_number=record.line_number))
            else:
                issues.append(
                    UnexpectedRecordOrder(
                        line_number=record.line_number,
                        found=record.code,
                        expected=_describe(allowed),
                    )
                )
            continue

        if record.code == TRANSMITTER:
            document.transmitter = record
        elif record.code == PAYER:
            current = PayerGroup(payer=record)
            document.payers.append(current)
        elif record.code == PAYEE:
            current.payees.append(record)
        elif record.code == END_OF_PAYER:
            current.end_of_payer = record
            LOGGER.debug(
                "Payer group %s closed with %s payee(s), %s declared",
                len(document.payers),
                len(current.payees),
                record.values.get("number_of_payees"),
            )
        elif record.code == STATE_TOTALS:
            current.state_totals.append(record)
        elif record.code == END_OF_TRANSMISSION:
            document.end_of_transmission = record
        last = record.code

    if last != END_OF_TRANSMISSION:
        line_number = records[-1].line_number + 1 if records and records[-1].line_number else None
        issues.append(
            UnexpectedRecordOrder(
                line_number=line_number,
                found=END_OF_FILE,
                expected=_describe(TRANSITIONS[last]),
            )
        )

    if issues:
        LOGGER.warning("Assembly finished with %s structure issue(s).", len(issues))
    return document, issues


def missing_records(document: Document) -> list[str]:
    problems: list[str] = []
    if document.transmitter is None:
        problems.append("transmitter record is missing")
    if not document.payers:
        problems.append("at least one payer group is required")
    for index, group in enumerate(document.payers, start=1):
        if group.end_of_payer is None:
            problems.append(f"payer group {index} has no end of payer record")
    if document.end_of_transmission is None:
        problems.append("end of transmission record is missing")
    return problems


def _derived(record: Record, sequence_number: int, **values: int) -> Record:
    return replace(record, values={**record.values, **values}, sequence_number=sequence_number)


def flatten(document: Document) -> list[Record]:
    """Records in file order with sequence numbers and counts recomputed.

    The document itself is left untouched.
    """
    problems = missing_records(document)
    if problems:
        raise MalformedDocument(problems)

    payee_total = document.payee_count
    records: list[Record] = [_derived(document.transmitter, 1, total_number_of_payees=payee_total)]

    for group in document.payers:
        records.append(_derived(group.payer, len(records) + 1))
        for payee in group.payees:
            records.append(_derived(payee, len(records) + 1))
        records.append(_derived(group.end_of_payer, len(records) + 1, number_of_payees=len(group.payees)))
        for state_totals in group.state_totals:
            records.append(_derived(state_totals, len(records) + 1))

    records.append(
        _derived(
            document.end_of_transmission,
            len(records) + 1,
            number_of_a_records=len(document.payers),
            total_number_of_payees=payee_total,
        )
    )
    return records
