"""Tests for the HTTP service."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from web_app.backend.main import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def valid_json(testdata) -> bytes:
    return (testdata / "oneTransactionFile.json").read_bytes()


@pytest.fixture
def invalid_payment_json(testdata) -> bytes:
    return (testdata / "fileWithInvalidPayment.json").read_bytes()


def _upload(name: str, payload: bytes, part: str = "file") -> dict:
    return {part: (name, payload, "application/octet-stream")}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_unknown_route_is_404(client):
    assert client.get("/report").status_code == 404


def test_print_json_as_irs(client, valid_json):
    response = client.post("/print", files=_upload("oneTransactionFile.json", valid_json), data={"format": "irs"})

    assert response.status_code == 200
    records = response.content.split(b"\r\n")[:-1]
    assert [record[:1] for record in records] == [b"T", b"A", b"B", b"C", b"F"]
    assert "content-disposition" not in response.headers


def test_print_irs_as_json(client, valid_irs_bytes):
    response = client.post("/print", files=_upload("oneTransactionFile.irs", valid_irs_bytes), data={"format": "json"})

    assert response.status_code == 200
    assert response.json()["payers"][0]["payees"][0]["payee_tin"] == "123456789"


@pytest.mark.parametrize("path", ["/print", "/convert", "/validator"])
def test_wrong_part_name_is_rejected(client, valid_json, path):
    response = client.post(path, files=_upload("oneTransactionFile.json", valid_json, part="err"), data={"format": "json"})
    assert response.status_code == 400


def test_unknown_format_is_rejected(client, valid_json):
    response = client.post("/print", files=_upload("oneTransactionFile.json", valid_json), data={"format": "xml"})
    assert response.status_code == 400


def test_print_does_not_validate(client, invalid_payment_json):
    response = client.post(
        "/print",
        files=_upload("fileWithInvalidPayment.json", invalid_payment_json),
        data={"format": "json"},
    )
    assert response.status_code == 200


def test_convert_returns_an_attachment(client, valid_json):
    response = client.post("/convert", files=_upload("oneTransactionFile.json", valid_json), data={"format": "irs"})

    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="oneTransactionFile.irs"'
    assert response.content.startswith(b"T2023")


def test_validator_accepts_a_valid_file(client, valid_json):
    response = client.post("/validator", files=_upload("oneTransactionFile.json", valid_json))

    assert response.status_code == 200
    assert response.json() == {"errors": [], "warnings": []}


def test_validator_reports_invalid_payment_as_not_implemented(client, invalid_payment_json):
    response = client.post("/validator", files=_upload("fileWithInvalidPayment.json", invalid_payment_json))

    assert response.status_code == 501
    errors = response.json()["errors"]
    assert len(errors) == 1
    assert errors[0]["rule"] == "value-range"
    assert errors[0]["record_index"] == 3
    assert errors[0]["field_name"] == "payment_amount_1"


def test_validator_messages_follow_the_locale(client, invalid_payment_json):
    response = client.post(
        "/validator",
        files=_upload("fileWithInvalidPayment.json", invalid_payment_json),
        data={"locale": "fr"},
    )
    assert response.json()["errors"][0]["message"].startswith("Champ")


def test_malformed_json_is_a_bad_request(client):
    response = client.post("/print", files=_upload("broken.json", b'{"transmitter": {}}'), data={"format": "irs"})

    assert response.status_code == 400
    assert response.json()["detail"]["problems"]


def test_undecodable_positional_file_is_a_bad_request(client, valid_irs_bytes):
    broken = valid_irs_bytes.replace(b"\r\nB", b"\r\nQ", 1)

    printed = client.post("/print", files=_upload("broken.irs", broken), data={"format": "json"})
    validated = client.post("/validator", files=_upload("broken.irs", broken))

    assert printed.status_code == 400
    assert printed.json()["detail"]["errors"][0]["rule"] == "unknown-record-type"
    assert validated.status_code == 501


def test_empty_upload_is_a_bad_request(client):
    response = client.post("/print", files=_upload("empty.json", b""), data={"format": "json"})
    assert response.status_code == 400


def test_text_outside_latin1_is_a_bad_request(client, testdata):
    tree = json.loads((testdata / "oneTransactionFile.json").read_text())
    tree["payers"][0]["payees"][0]["first_payee_name_line"] = "ŁUKASZ NOWAK"
    payload = json.dumps(tree, ensure_ascii=False).encode("utf-8")

    converted = client.post("/convert", files=_upload("polish.json", payload), data={"format": "irs"})
    validated = client.post("/validator", files=_upload("polish.json", payload))

    assert converted.status_code == 400
    assert converted.json()["detail"]["errors"][0]["rule"] == "field-charset"
    assert validated.status_code == 501
    assert [item["rule"] for item in validated.json()["errors"]] == ["field-charset"]


def test_validator_findings_are_in_record_order(client, valid_irs_bytes):
    broken = valid_irs_bytes.replace(b"\r\nB", b"\r\nQ", 1)

    response = client.post("/validator", files=_upload("broken.irs", broken))

    indexes = [item["record_index"] or 0 for item in response.json()["errors"]]
    assert response.status_code == 501
    assert len(indexes) > 1
    assert indexes == sorted(indexes)
