from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .converter import FORMAT_JSON, FORMATS, DecodeResult, read_document, render_document
from .errors import IrsFormatError, MalformedDocument, localize
from .exporters import export_to_excel
from .messages import DEFAULT_LOCALE, available_locales
from .models import Finding
from .record_codec import DEFAULT_ENCODING, LineEnding
from .validator import DEFAULT_CATEGORIES, UNAVAILABLE_CATEGORIES, findings_payload, has_errors, validate

LOGGER = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _read(args: argparse.Namespace) -> DecodeResult | None:
    payload = Path(args.input).read_bytes()
    try:
        result = read_document(payload, encoding=args.input_encoding, locale=args.locale)
    except MalformedDocument as error:
        for problem in error.problems:
            LOGGER.error("%s", problem)
        return None

    for finding in result.findings:
        LOGGER.warning("%s", finding.message)
    if result.findings and not args.continue_on_error:
        LOGGER.error("Input has %s decoding issue(s); use --continue-on-error to proceed.", len(result.findings))
        return None
    return result


def _render(args: argparse.Namespace, result: DecodeResult) -> bytes | None:
    try:
        return render_document(
            result.document,
            args.format,
            line_ending=LineEnding(args.line_ending),
            encoding=args.output_encoding,
        )
    except IrsFormatError as error:
        LOGGER.error("Cannot write %s output: %s", args.format, error.render(args.locale))
        return None


def _convert_command(args: argparse.Namespace) -> int:
    result = _read(args)
    if result is None:
        return 1
    content = _render(args, result)
    if content is None:
        return 1
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(content)
    LOGGER.info("Converted %s to %s (%s)", args.input, output_path, args.format)
    return 0


def _print_command(args: argparse.Namespace) -> int:
    result = _read(args)
    if result is None:
        return 1
    content = _render(args, result)
    if content is None:
        return 1
    sys.stdout.buffer.write(content)
    sys.stdout.buffer.flush()
    return 0


def _validate_command(args: argparse.Namespace) -> int:
    payload = Path(args.input).read_bytes()
    try:
        result = read_document(payload, encoding=args.input_encoding, locale=args.locale)
    except MalformedDocument as error:
        print(json.dumps({"errors": [error.to_finding(args.locale).as_dict()], "warnings": []}, indent=2))
        return 1

    findings = localize(result.findings, args.locale)
    findings.extend(validate(result.document.freeze(), categories=args.rules, locale=args.locale))
    findings.sort(key=Finding.sort_key)
    print(json.dumps(findings_payload(findings), ensure_ascii=False, indent=2))
    return 1 if has_errors(findings) else 0


def _excel_command(args: argparse.Namespace) -> int:
    args.continue_on_error = True
    result = _read(args)
    if result is None:
        return 1
    findings = None
    if args.with_findings:
        findings = [*result.findings, *validate(result.document.freeze(), locale=args.locale)]
        findings.sort(key=Finding.sort_key)
    export_to_excel(result.document, Path(args.output_xlsx), findings=findings)
    return 0


def _serve_command(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("web_app.backend.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--input", required=True, help="IRS positional file or JSON document.")
    parser.add_argument("--input-encoding", default=DEFAULT_ENCODING, help="Positional input encoding.")
    parser.add_argument("--locale", default=DEFAULT_LOCALE, choices=available_locales(), help="Message locale.")
    parser.add_argument("--continue-on-error", action="store_true", help="Proceed when decoding reports issues.")


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--format", default=FORMAT_JSON, choices=FORMATS, help="Output format.")
    parser.add_argument(
        "--line-ending",
        default=LineEnding.CRLF.value,
        choices=[item.value for item in LineEnding],
        help="Record framing for irs output.",
    )
    parser.add_argument("--output-encoding", default=DEFAULT_ENCODING, help="Positional output encoding.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="irs-pipeline",
        description="IRS Publication 1220 fixed-width conversion and validation.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert a file to the given format.")
    _add_input_arguments(convert)
    _add_output_arguments(convert)
    convert.add_argument("--output", required=True, help="Output path.")
    convert.set_defaults(handler=_convert_command)

    print_ = subparsers.add_parser("print", help="Write a file to stdout in the given format.")
    _add_input_arguments(print_)
    _add_output_arguments(print_)
    print_.set_defaults(handler=_print_command)

    validate_ = subparsers.add_parser("validate", help="Report validation findings as JSON.")
    _add_input_arguments(validate_)
    validate_.add_argument(
        "--rules",
        nargs="+",
        default=None,
        choices=[*DEFAULT_CATEGORIES, *UNAVAILABLE_CATEGORIES],
        help="Rule categories to run (default: all available).",
    )
    validate_.set_defaults(handler=_validate_command)

    excel = subparsers.add_parser("excel", help="Export a file to an Excel workbook.")
    _add_input_arguments(excel)
    excel.add_argument("--output-xlsx", required=True, help="Excel output path.")
    excel.add_argument("--with-findings", action="store_true", help="Add a sheet with validation findings.")
    excel.set_defaults(handler=_excel_command)

    serve = subparsers.add_parser("serve", help="Run the HTTP service.")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.set_defaults(handler=_serve_command)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(verbose=args.verbose)
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
