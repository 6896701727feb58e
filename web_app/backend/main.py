from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from irs_pipeline.converter import FORMAT_IRS, FORMAT_JSON, FORMATS, DecodeResult, read_document, render_document
from irs_pipeline.errors import IrsFormatError, MalformedDocument
from irs_pipeline.messages import available_locales
from irs_pipeline.models import Finding
from irs_pipeline.record_codec import LineEnding
from irs_pipeline.validator import findings_payload, has_errors, validate

LOGGER = logging.getLogger(__name__)

DEFAULT_FORMAT = os.getenv("IRS_WEB_DEFAULT_FORMAT", FORMAT_JSON).strip().lower()
INPUT_ENCODING = os.getenv("IRS_WEB_INPUT_ENCODING", "latin-1")
LOCALE = os.getenv("IRS_WEB_LOCALE", "en").strip().lower()
LINE_ENDING = LineEnding(os.getenv("IRS_WEB_LINE_ENDING", LineEnding.CRLF.value).strip().lower())
MAX_UPLOAD_BYTES = int(os.getenv("IRS_WEB_MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))

_MEDIA_TYPES = {
    FORMAT_IRS: "text/plain; charset=latin-1",
    FORMAT_JSON: "application/json",
}
_EXTENSIONS = {
    FORMAT_IRS: ".irs",
    FORMAT_JSON: ".json",
}


def _resolve_format(output_format: str | None) -> str:
    value = (output_format or DEFAULT_FORMAT).strip().lower()
    if value not in FORMATS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported format {value!r}, expected one of: {', '.join(FORMATS)}",
        )
    return value


def _resolve_locale(locale: str | None) -> str:
    value = (locale or LOCALE).strip().lower()
    return value if value in available_locales() else LOCALE


async def _read_upload(upload: UploadFile | None, locale: str) -> tuple[str, DecodeResult]:
    if upload is None or not upload.filename:
        raise HTTPException(status_code=400, detail="Missing multipart form field 'file'.")

    payload = await upload.read()
    if not payload:
        raise HTTPException(status_code=400, detail=f"Uploaded file {upload.filename} is empty.")
    if len(payload) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail=f"Uploaded file exceeds {MAX_UPLOAD_BYTES} bytes.")

    try:
        result = read_document(payload, encoding=INPUT_ENCODING, locale=locale)
    except MalformedDocument as error:
        raise HTTPException(
            status_code=400,
            detail={"message": error.render(locale), "problems": error.problems},
        ) from error
    except UnicodeDecodeError as error:
        raise HTTPException(status_code=400, detail=f"Cannot decode upload as {INPUT_ENCODING}: {error}") from error

    if result.findings:
        LOGGER.warning("Upload %s decoded with %s finding(s).", upload.filename, len(result.findings))
    return Path(upload.filename).stem or "document", result


def _render(result: DecodeResult, output_format: str, locale: str) -> bytes:
    if result.findings:
        raise HTTPException(status_code=400, detail=findings_payload(result.findings))
    try:
        return render_document(result.document, output_format, line_ending=LINE_ENDING, encoding=INPUT_ENCODING)
    except IrsFormatError as error:
        findings = [error.to_finding(locale)]
        raise HTTPException(status_code=400, detail=findings_payload(findings)) from error


app = FastAPI(
    title="IRS Information Return API",
    version="1.0.0",
    description="Conversion and validation of IRS Publication 1220 fixed-width files.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/print")
async def print_file(
    file: UploadFile | None = File(default=None),
    output_format: str | None = Form(default=None, alias="format"),
    locale: str | None = Form(default=None),
) -> Response:
    resolved_format = _resolve_format(output_format)
    resolved_locale = _resolve_locale(locale)
    _, result = await _read_upload(file, resolved_locale)
    content = _render(result, resolved_format, resolved_locale)
    return Response(content=content, media_type=_MEDIA_TYPES[resolved_format])


@app.post("/convert")
async def convert_file(
    file: UploadFile | None = File(default=None),
    output_format: str | None = Form(default=None, alias="format"),
    locale: str | None = Form(default=None),
) -> Response:
    resolved_format = _resolve_format(output_format)
    resolved_locale = _resolve_locale(locale)
    stem, result = await _read_upload(file, resolved_locale)
    content = _render(result, resolved_format, resolved_locale)
    filename = f"{stem}{_EXTENSIONS[resolved_format]}"
    return Response(
        content=content,
        media_type=_MEDIA_TYPES[resolved_format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/validator")
async def validate_file(
    file: UploadFile | None = File(default=None),
    locale: str | None = Form(default=None),
) -> JSONResponse:
    resolved_locale = _resolve_locale(locale)
    _, result = await _read_upload(file, resolved_locale)
    findings = sorted(
        [*result.findings, *validate(result.document.freeze(), locale=resolved_locale, encoding=INPUT_ENCODING)],
        key=Finding.sort_key,
    )
    payload = findings_payload(findings)
    if has_errors(findings):
        return JSONResponse(status_code=501, content=payload)
    return JSONResponse(status_code=200, content=payload)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app.backend.main:app", host="0.0.0.0", port=8000, reload=True)
