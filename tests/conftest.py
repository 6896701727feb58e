"""Shared fixtures: JSON documents under tests/testdata and their positional form."""

from __future__ import annotations

from pathlib import Path

import pytest

from irs_pipeline.converter import encode_irs
from irs_pipeline.layouts import RECORD_LENGTH
from irs_pipeline.models import Document
from irs_pipeline.portable import loads

TESTDATA = Path(__file__).parent / "testdata"


def load_document(name: str) -> Document:
    return loads((TESTDATA / name).read_bytes())


def blank_line(code: str, length: int = RECORD_LENGTH) -> str:
    """A line holding only the record type, for any code, known or not."""
    return code.ljust(length)


def put(line: str, start: int, text: str) -> str:
    """Overwrite ``line`` at 1-based ``start`` with ``text``."""
    return line[: start - 1] + text + line[start - 1 + len(text) :]


@pytest.fixture
def testdata() -> Path:
    return TESTDATA


@pytest.fixture
def valid_document() -> Document:
    return load_document("oneTransactionFile.json")


@pytest.fixture
def invalid_payment_document() -> Document:
    return load_document("fileWithInvalidPayment.json")


@pytest.fixture
def valid_irs_bytes(valid_document: Document) -> bytes:
    return encode_irs(valid_document)
