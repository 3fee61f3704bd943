"""
Client Intake - Intake Validator

One schema for the intake wizard, applied per step for fast feedback and in
full at the trust boundary before anything is persisted.
"""

from intake_core.intake.schema import (
    CaseType,
    WizardStep,
    PersonalInfo,
    ImmigrationInfo,
    DocumentNotes,
    ConsentInfo,
    IntakePayload,
    FieldViolation,
    IntakeValidationResult,
    PREFERRED_LANGUAGES,
    STEP_MODELS,
)
from intake_core.intake.validation import (
    validate_intake_data,
    validate_step,
    create_payload,
)

__all__ = [
    # Schema
    "CaseType",
    "WizardStep",
    "PersonalInfo",
    "ImmigrationInfo",
    "DocumentNotes",
    "ConsentInfo",
    "IntakePayload",
    "FieldViolation",
    "IntakeValidationResult",
    "PREFERRED_LANGUAGES",
    "STEP_MODELS",
    # Validation
    "validate_intake_data",
    "validate_step",
    "create_payload",
]
