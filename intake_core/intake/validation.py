"""
Intake Validation - Whole-Object and Per-Step Checks

Runs the intake section models against untyped data and reports every
violated constraint as a dotted field path plus a readable message.

The same section models back both passes:
- per wizard step, for fast feedback while the client fills in the form
- over the full payload, immediately before anything is persisted
"""

from __future__ import annotations

import logging
from typing import Any, Union

from pydantic import BaseModel, ValidationError

from intake_core.intake.schema import (
    STEP_MODELS,
    FieldViolation,
    IntakePayload,
    IntakeValidationResult,
    WizardStep,
)


logger = logging.getLogger(__name__)

# Path reported when the top-level value itself has the wrong shape
ROOT_PATH = "payload"


# =============================================================================
# Error Translation
# =============================================================================


def _message_for(error: dict[str, Any]) -> str:
    """Render one pydantic error as a client-facing message."""
    kind = error["type"]
    ctx = error.get("ctx") or {}

    if kind == "missing":
        return "This field is required"
    if kind == "value_error" and "error" in ctx:
        return str(ctx["error"])
    # EmailStr reports a value_error carrying the email-validator reason
    if kind == "value_error" and "reason" in ctx:
        return "Enter a valid email address"
    if kind == "string_type":
        return "Must be text"
    if kind == "bool_type":
        return "Must be true or false"
    if kind == "enum" and "expected" in ctx:
        return f"Select one of: {ctx['expected']}"
    if kind in ("model_type", "model_attributes_type", "dict_type"):
        return "Must be an object"
    return error["msg"]


def _violations_from(exc: ValidationError, prefix: str = "") -> tuple[FieldViolation, ...]:
    violations = []
    for error in exc.errors():
        parts = [prefix] if prefix else []
        parts.extend(str(part) for part in error["loc"])
        path = ".".join(parts) or ROOT_PATH
        violations.append(FieldViolation(path=path, message=_message_for(error)))
    return tuple(violations)


def _run(model: type[BaseModel], data: Any, prefix: str = "") -> IntakeValidationResult:
    try:
        parsed = model.model_validate(data)
    except ValidationError as e:
        return IntakeValidationResult(valid=False, violations=_violations_from(e, prefix))
    return IntakeValidationResult(valid=True, payload=parsed)


# =============================================================================
# Validation Functions
# =============================================================================


def validate_intake_data(data: Any) -> IntakeValidationResult:
    """
    Validate a complete intake payload.

    This is the authoritative check: it runs on the server immediately
    before persistence, whatever the client-side steps reported.

    Args:
        data: Decoded JSON payload (any shape)

    Returns:
        IntakeValidationResult; ``payload`` is an IntakePayload when valid
    """
    result = _run(IntakePayload, data)
    if result.is_blocked:
        logger.info("Intake payload rejected with %d violation(s)", len(result.violations))
    return result


def validate_step(step: Union[WizardStep, str], data: Any) -> IntakeValidationResult:
    """
    Validate the section belonging to one wizard step.

    Violation paths carry the section prefix (``personal.email``), so they
    match the paths reported by validate_intake_data for the same field.

    Args:
        step: WizardStep or its string value
        data: The section's decoded JSON (the whole payload for REVIEW)

    Returns:
        IntakeValidationResult for that section

    Raises:
        ValueError: If step is not a known wizard step
    """
    step = WizardStep(step)

    if step == WizardStep.REVIEW:
        return validate_intake_data(data)

    # The documents section is optional in the full payload
    if step == WizardStep.DOCUMENTS and data is None:
        data = {}

    return _run(STEP_MODELS[step], data, prefix=step.value)


def create_payload(data: Any) -> IntakePayload:
    """
    Validate and return the typed payload.

    Raises:
        ValueError: If the data does not satisfy the intake schema
    """
    result = validate_intake_data(data)
    if result.is_blocked:
        raise ValueError("; ".join(result.errors))
    return result.payload
