"""
Intake Submission Routes - Web API for the Client Intake Wizard

Public endpoints used by the intake wizard:
- POST /api/submit               final multipart submission
- POST /api/validate/{step}      per-step validation while filling in the form
- GET  /api/intake/options       choices and upload limits for rendering

No accounts: anyone may submit. The server re-validates everything the
wizard already checked; client-side checks are a convenience only.
"""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from starlette.datastructures import FormData

from intake_core.intake import (
    CaseType,
    FieldViolation,
    PREFERRED_LANGUAGES,
    WizardStep,
    validate_intake_data,
    validate_step,
)
from intake_core.submission import (
    MAX_FILES,
    MAX_FILE_SIZE_BYTES,
    IncomingFile,
    SubmissionWriter,
    UploadRejected,
    get_submission_writer,
)
from utils.formatting import format_file_size
from web.limits import RequestTooLarge


logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api", tags=["intake"])

PAYLOAD_FIELD = "payload"
FILES_FIELD = "files"


def _error_response(
    message: str,
    violations: tuple[FieldViolation, ...] = (),
    status_code: int = 400,
) -> JSONResponse:
    return JSONResponse(
        {"error": message, "violations": [v.to_dict() for v in violations]},
        status_code=status_code,
    )


def _file_parts(form: FormData) -> list:
    """Uploaded parts of the files field; empty file inputs are skipped."""
    return [
        item
        for item in form.getlist(FILES_FIELD)
        if not isinstance(item, str) and item.filename
    ]


# =============================================================================
# Submission
# =============================================================================


@router.post("/submit")
async def submit_intake(
    request: Request,
    background_tasks: BackgroundTasks,
    writer: SubmissionWriter = Depends(get_submission_writer),
):
    """
    Accept the final intake submission.

    Multipart fields:
        payload: JSON-encoded intake payload
        files: Zero to 15 PDF or image files, 25 MB each at most

    Returns:
        200 {"submissionId": ...} once the intake and all files are stored.
        400 {"error", "violations"} on parse, validation or storage failure.
        413 when the body passes the request size cap.
    """
    try:
        form = await request.form()
    except RequestTooLarge:
        raise
    except Exception as e:
        logger.info("Unparseable submission body: %s", e)
        return _error_response("Could not read the submitted form")

    try:
        return await _store_submission(form, background_tasks, writer)
    finally:
        # Release spooled upload files
        await form.close()


async def _store_submission(
    form: FormData,
    background_tasks: BackgroundTasks,
    writer: SubmissionWriter,
) -> JSONResponse:
    parts = _file_parts(form)
    if len(parts) > MAX_FILES:
        return _error_response(
            "Upload rejected",
            (FieldViolation(
                path=FILES_FIELD,
                message=f"Too many files: {len(parts)}. Maximum is {MAX_FILES}",
            ),),
        )

    raw_payload = form.get(PAYLOAD_FIELD)
    if not isinstance(raw_payload, str) or not raw_payload.strip():
        return _error_response(
            "Missing intake payload",
            (FieldViolation(path=PAYLOAD_FIELD, message="This field is required"),),
        )

    try:
        data = json.loads(raw_payload)
    except ValueError:
        return _error_response(
            "Invalid intake payload",
            (FieldViolation(path=PAYLOAD_FIELD, message="Must be valid JSON"),),
        )

    # Trust boundary: the full schema runs here regardless of wizard checks
    validation = validate_intake_data(data)
    if validation.is_blocked:
        return _error_response("Please correct the highlighted fields", validation.violations)

    files = [
        IncomingFile.from_bytes(await part.read(), part.filename, part.content_type)
        for part in parts
    ]

    try:
        submission_id = await run_in_threadpool(
            writer.submit,
            validation.payload,
            files,
            background_tasks.add_task,
        )
    except UploadRejected as e:
        return _error_response("Upload rejected", e.violations)
    except Exception as e:
        logger.exception("Intake submission failed")
        return _error_response(str(e) or "Invalid submission")

    return JSONResponse({"submissionId": submission_id})


# =============================================================================
# Wizard Support
# =============================================================================


@router.post("/validate/{step}")
async def validate_wizard_step(step: str, request: Request):
    """
    Validate one wizard step.

    Body is that step's section as JSON (the whole payload for "review").
    Always 200: a failed check is an expected answer, not an error.
    """
    try:
        wizard_step = WizardStep(step)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown step: {step}")

    try:
        data = await request.json()
    except ValueError:
        return _error_response(
            "Invalid JSON body",
            (FieldViolation(path=wizard_step.value, message="Must be valid JSON"),),
        )

    result = validate_step(wizard_step, data)
    return JSONResponse(result.to_dict())


@router.get("/intake/options")
async def intake_options():
    """Choices and limits the wizard renders."""
    return {
        "steps": [s.value for s in WizardStep],
        "caseTypes": [c.value for c in CaseType],
        "preferredLanguages": list(PREFERRED_LANGUAGES),
        "uploads": {
            "maxFiles": MAX_FILES,
            "maxFileSizeBytes": MAX_FILE_SIZE_BYTES,
            "maxFileSize": format_file_size(MAX_FILE_SIZE_BYTES),
            "accept": "application/pdf,image/*",
        },
    }
