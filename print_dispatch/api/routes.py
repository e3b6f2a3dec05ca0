"""
API routes for the print dispatch service.

Every print endpoint returns a DispatchResult as JSON: 200 on success,
500 with {success: false, error} when the job fails, 400 when a required
body field is missing or malformed.
"""

import json
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from print_dispatch.api.dependencies import get_config_store, get_engine, get_service_info
from print_dispatch.api.models import (
    BatchJobRequest,
    FileJobRequest,
    FragmentJobRequest,
    HtmlJobRequest,
    SetConfigRequest,
)
from print_dispatch.errors import InvalidKeyPathError, OptionsError, PrintDispatchError
from print_dispatch.strategies import (
    DispatchResult,
    DocumentClass,
    Fragment,
    PrintOptions,
    PrintRequest,
)
from print_dispatch.validation import validate_pdf

router = APIRouter()

# Track server start time
_server_start_time = datetime.now()

DEMO_FILES = {
    "pdf": "demo.pdf",
    "word": "demo.docx",
    "excel": "demo.xlsx",
    "ppt": "demo.pptx",
}

REQUIRED_ERROR_TYPES = {"missing", "string_too_short", "too_short"}


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra}
    )


def _job_response(result: DispatchResult) -> JSONResponse:
    return JSONResponse(
        status_code=200 if result.success else 500,
        content=result.to_dict()
    )


def _validation_message(exc: RequestValidationError) -> str:
    """One readable line for the first failing body field."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    error = errors[0]
    kind = error.get("type", "")
    field = ".".join(str(part) for part in error.get("loc", ())[1:])

    if kind == "json_invalid":
        return "Request body is not valid JSON"
    if not field:
        return "Request body must be a JSON object"
    if kind in REQUIRED_ERROR_TYPES:
        return f"{field} is required"
    if kind == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    return f"{field}: {error.get('msg', 'invalid value')}"


async def _print_file(body: FileJobRequest, document_class: DocumentClass) -> JSONResponse:
    options = PrintOptions.from_dict(body.options)
    result = await get_engine().dispatch(PrintRequest(document_class, body.filePath, options))
    return _job_response(result)


# =============================================================================
# Service
# =============================================================================

@router.get("/health")
async def health_check():
    """Liveness check."""
    info = get_service_info()
    uptime_seconds = (datetime.now() - _server_start_time).total_seconds()
    return {
        "status": "ok",
        "platform": info.platform,
        "uptime_seconds": int(uptime_seconds),
    }


@router.get("/config")
async def get_config():
    """
    Resolved configuration snapshot.

    Office paths are reported even when configured but not accessible, so
    the UI can show what the user entered.
    """
    engine = get_engine()
    store = get_config_store()
    info = get_service_info()

    office = {}
    if engine.locator:
        for role in ("word", "excel", "ppt"):
            office[role] = engine.locator.preferred(role)

    demo_dir = info.resources_dir / "demo"
    browser = engine.renderer.resolve_browser_executable() if engine.renderer else None

    return {
        "success": True,
        "data": {
            "configPath": str(store.path),
            "configExists": store.exists(),
            "platform": info.platform,
            "resolved": {
                "office": office,
                "demo": {kind: str(demo_dir / name) for kind, name in DEMO_FILES.items()},
                "logFile": str(info.log_file) if info.log_file else None,
                "browser": browser,
            },
            "config": store.load(),
        }
    }


@router.post("/setConfig")
async def set_config(body: SetConfigRequest):
    """Write one dotted key path into the configuration store."""
    try:
        config = get_config_store().set(body.key, body.value)
    except InvalidKeyPathError as e:
        return _error(400, str(e))

    return {"success": True, "data": config}


# =============================================================================
# Printers
# =============================================================================

@router.get("/printers")
async def list_printers():
    """List printers known to the OS."""
    printers = await get_engine().directory.list_printers()
    return {"success": True, "data": [p.to_dict() for p in printers]}


@router.get("/printers/default")
async def get_default_printer():
    """Get the default printer, or null when none is set."""
    printer = await get_engine().directory.get_default_printer()
    return {"success": True, "data": printer.to_dict() if printer else None}


@router.get("/printers/{name}/status")
async def get_printer_status(name: str):
    """Raw status output for one printer."""
    status = await get_engine().directory.check_status(name)
    return {"success": True, "data": {"name": name, "status": status}}


@router.get("/printers/{name}/options")
async def get_printer_options(name: str):
    """Driver options for one printer (POSIX)."""
    options = await get_engine().directory.get_driver_options(name)
    return {"success": True, "data": {"name": name, "options": options}}


@router.get("/printers/{name}/jobs/{job_id}")
async def get_job_status(name: str, job_id: str):
    """
    Status of a spooled job (POSIX).

    A job that is no longer listed by the spooler is reported as completed.
    """
    line = await get_engine().directory.get_job_status(name, job_id)
    return {
        "success": True,
        "data": {
            "printer": name,
            "jobId": job_id,
            "completed": line is None,
            "status": line,
        }
    }


@router.delete("/printers/{name}/jobs/{job_id}")
async def cancel_job(name: str, job_id: str):
    """Cancel a spooled job (POSIX)."""
    await get_engine().directory.cancel_job(name, job_id)
    return {"success": True, "data": {"printer": name, "jobId": job_id, "cancelled": True}}


# =============================================================================
# Printing
# =============================================================================

@router.post("/print/html")
async def print_html(body: HtmlJobRequest):
    """Render HTML content to PDF and print it."""
    options = PrintOptions.from_dict(body.options)
    result = await get_engine().dispatch(PrintRequest(DocumentClass.HTML, body.htmlContent, options))
    return _job_response(result)


@router.post("/print/pdf")
async def print_pdf(body: FileJobRequest):
    """Print a PDF by local path or http(s) URL."""
    return await _print_file(body, DocumentClass.PDF)


@router.post("/print/pdf-stream")
async def print_pdf_stream(
    file: UploadFile = File(..., description="PDF document"),
    options: Optional[str] = Form(default=None, description="JSON-encoded print options")
):
    """Print an uploaded PDF."""
    data = await file.read()
    if not data:
        return _error(400, "Empty file")

    validation = validate_pdf(data)
    if not validation.valid:
        return _error(400, validation.error, code=validation.error_code)

    try:
        option_values = json.loads(options) if options else None
    except ValueError:
        return _error(400, "options must be valid JSON")
    print_options = PrintOptions.from_dict(option_values)

    engine = get_engine()
    local_path = await engine.temp_store.save_upload(data, file.filename)
    result = await engine.dispatch(PrintRequest(DocumentClass.PDF, str(local_path), print_options))
    return _job_response(result)


@router.post("/print/pdf/batch")
async def print_pdf_batch(body: BatchJobRequest):
    """
    Print several PDFs one after another.

    Results are returned in submission order; one failure does not stop
    the rest.
    """
    options = PrintOptions.from_dict(body.options)
    results = await get_engine().print_many(body.filePaths, DocumentClass.PDF, options)

    failed = sum(1 for r in results if not r.success)
    content = {"success": failed == 0, "data": [r.to_dict() for r in results]}
    if failed:
        content["error"] = f"{failed} of {len(results)} file(s) failed to print"
    return JSONResponse(status_code=200 if failed == 0 else 500, content=content)


@router.post("/print/word")
async def print_word(body: FileJobRequest):
    """Print a Word document with the located Word executable."""
    return await _print_file(body, DocumentClass.WORD)


@router.post("/print/excel")
async def print_excel(body: FileJobRequest):
    """Print an Excel workbook with the located Excel executable."""
    return await _print_file(body, DocumentClass.EXCEL)


@router.post("/print/ppt")
async def print_ppt(body: FileJobRequest):
    """Print a PowerPoint deck with the located PowerPoint executable."""
    return await _print_file(body, DocumentClass.PPT)


@router.post("/print/office")
async def print_office(body: FileJobRequest):
    """Print any office document through the automation script (Windows)."""
    return await _print_file(body, DocumentClass.OFFICE)


@router.post("/print/jsx")
async def print_jsx(body: FragmentJobRequest):
    """Render a UI fragment with its initial data and print it."""
    fragment = Fragment(markup=body.jsx, data=body.initialData)
    options = PrintOptions.from_dict(body.options)
    result = await get_engine().dispatch(PrintRequest(DocumentClass.FRAGMENT, fragment, options))
    return _job_response(result)


def register_error_handlers(app) -> None:
    """Map library errors to {success: false, error} responses."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(OptionsError)
    async def options_error_handler(request: Request, exc: OptionsError):
        return _error(400, str(exc))

    @app.exception_handler(PrintDispatchError)
    async def dispatch_error_handler(request: Request, exc: PrintDispatchError):
        return _error(500, str(exc))
