"""Tests for the irs-pipeline command line."""

from __future__ import annotations

import json

import pytest

from irs_pipeline.cli import build_parser, main
from irs_pipeline.converter import decode_irs


def test_convert_json_to_irs(tmp_path, testdata, valid_document):
    output = tmp_path / "out" / "one.irs"

    code = main(["convert", "--input", str(testdata / "oneTransactionFile.json"), "--format", "irs", "--output", str(output)])

    assert code == 0
    assert decode_irs(output.read_bytes()).document == valid_document


def test_convert_with_lf_framing(tmp_path, testdata):
    output = tmp_path / "one.irs"

    main(
        [
            "convert",
            "--input",
            str(testdata / "oneTransactionFile.json"),
            "--format",
            "irs",
            "--line-ending",
            "lf",
            "--output",
            str(output),
        ]
    )

    assert output.read_bytes().count(b"\n") == 5
    assert b"\r" not in output.read_bytes()


def test_convert_stops_on_decoding_issues(tmp_path, valid_irs_bytes):
    source = tmp_path / "broken.irs"
    source.write_bytes(valid_irs_bytes.replace(b"\r\nB", b"\r\nQ", 1))
    output = tmp_path / "out.json"

    assert main(["convert", "--input", str(source), "--output", str(output)]) == 1
    assert not output.exists()

    assert main(["convert", "--input", str(source), "--output", str(output), "--continue-on-error"]) == 0
    assert json.loads(output.read_text())["payers"][0]["payees"] == []


def test_print_writes_to_stdout(capsysbinary, testdata):
    code = main(["print", "--input", str(testdata / "oneTransactionFile.json"), "--format", "irs"])

    assert code == 0
    assert capsysbinary.readouterr().out.startswith(b"T2023")


def test_validate_exit_codes(capsys, testdata):
    assert main(["validate", "--input", str(testdata / "oneTransactionFile.json")]) == 0
    assert json.loads(capsys.readouterr().out) == {"errors": [], "warnings": []}

    assert main(["validate", "--input", str(testdata / "fileWithInvalidPayment.json")]) == 1
    payload = json.loads(capsys.readouterr().out)
    assert [item["rule"] for item in payload["errors"]] == ["value-range"]


def test_validate_rule_subset(capsys, testdata):
    code = main(["validate", "--input", str(testdata / "fileWithInvalidPayment.json"), "--rules", "tin", "name-control"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["errors"] == []
    assert [item["rule"] for item in payload["warnings"]] == ["rule-not-available"]


def test_validate_reports_malformed_documents(capsys, tmp_path):
    source = tmp_path / "broken.json"
    source.write_text('{"payers": []}')

    assert main(["validate", "--input", str(source)]) == 1
    assert json.loads(capsys.readouterr().out)["errors"][0]["rule"] == "malformed-document"


def test_unknown_rule_category_is_a_usage_error():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["validate", "--input", "x", "--rules", "bogus"])


def test_text_outside_latin1_fails_cleanly(capsys, tmp_path, testdata):
    tree = json.loads((testdata / "oneTransactionFile.json").read_text())
    tree["payers"][0]["payees"][0]["first_payee_name_line"] = "ŁUKASZ NOWAK"
    source = tmp_path / "polish.json"
    source.write_text(json.dumps(tree, ensure_ascii=False), encoding="utf-8")
    output = tmp_path / "polish.irs"

    assert main(["convert", "--input", str(source), "--format", "irs", "--output", str(output)]) == 1
    assert not output.exists()

    assert main(["validate", "--input", str(source)]) == 1
    assert [item["rule"] for item in json.loads(capsys.readouterr().out)["errors"]] == ["field-charset"]
