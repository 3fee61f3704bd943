"""
Client Intake Portal - Core Logic

Multi-step intake for a law office:
1. Intake validation (one schema, per-step and full passes)
2. Submission writing (parent record, uploaded files, CRM notification)
3. Retention of unconverted intakes
"""

from .intake import (
    CaseType,
    WizardStep,
    IntakePayload,
    FieldViolation,
    IntakeValidationResult,
    validate_intake_data,
    validate_step,
)
from .submission import (
    SubmissionStatus,
    IntakeSubmission,
    UploadedFile,
    IncomingFile,
    SubmissionError,
    UploadRejected,
    StorageWriteFailure,
    SubmissionWriter,
    purge_unconverted,
)

__all__ = [
    # Intake Validator
    "CaseType",
    "WizardStep",
    "IntakePayload",
    "FieldViolation",
    "IntakeValidationResult",
    "validate_intake_data",
    "validate_step",
    # Submission Writer
    "SubmissionStatus",
    "IntakeSubmission",
    "UploadedFile",
    "IncomingFile",
    "SubmissionError",
    "UploadRejected",
    "StorageWriteFailure",
    "SubmissionWriter",
    "purge_unconverted",
]
