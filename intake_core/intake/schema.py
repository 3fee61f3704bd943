"""
Intake Schema - Client Intake Form Sections

Defines the canonical schema for the four wizard sections (personal,
immigration, documents, consent). These models are the only definition of
the intake rules: the per-step checks and the full submission check both
validate against them.

Wire names are camelCase (as sent by the wizard); attributes are snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, StrictBool, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================


class CaseType(str, Enum):
    """Case categories offered on the immigration step."""

    FAMILY_BASED = "Family-Based"
    REMOVAL_DEFENSE = "Removal Defense"
    ASYLUM = "Asylum"
    EMPLOYMENT_BASED = "Employment-Based"
    U_VISA_VAWA = "U Visa / VAWA"
    NATURALIZATION = "Naturalization"
    FOIA_RECORDS = "FOIA / Records"
    OTHER = "Other"


class WizardStep(Enum):
    """Steps of the intake wizard, in display order."""

    PERSONAL = "personal"
    IMMIGRATION = "immigration"
    DOCUMENTS = "documents"
    CONSENT = "consent"
    REVIEW = "review"


# =============================================================================
# Constants
# =============================================================================

PREFERRED_LANGUAGES: Final[tuple[str, ...]] = (
    "English",
    "Spanish",
    "Haitian Creole",
    "Portuguese",
    "French",
    "Arabic",
    "Mandarin",
    "Other",
)


# =============================================================================
# Section Models
# =============================================================================


def _present(value: Any, message: str) -> Any:
    """Optional keys may be left out, but an explicit null is not accepted."""
    if value is None:
        raise ValueError(message)
    return value


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class PersonalInfo(_Section):
    """Step 1: who the prospective client is and how to reach them."""

    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    preferred_language: str
    dob: str
    a_number: Optional[str] = None
    country_of_birth: str
    address_line1: str
    city: str
    state: str
    zip: str

    @field_validator(
        "first_name",
        "last_name",
        "preferred_language",
        "dob",
        "country_of_birth",
        "address_line1",
        "city",
        "state",
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if len(value) < 1:
            raise ValueError("This field is required")
        return value

    @field_validator("phone")
    @classmethod
    def _phone_length(cls, value: str) -> str:
        if len(value) < 7:
            raise ValueError("Phone number must be at least 7 characters")
        return value

    @field_validator("zip")
    @classmethod
    def _zip_length(cls, value: str) -> str:
        if len(value) < 3:
            raise ValueError("ZIP code must be at least 3 characters")
        return value

    @field_validator("a_number", mode="before")
    @classmethod
    def _a_number_not_null(cls, value: Any) -> Any:
        return _present(value, "Must be text")


class ImmigrationInfo(_Section):
    """Step 2: case category and free-text immigration history."""

    case_type: CaseType
    entry_date: Optional[str] = None
    manner_of_entry: Optional[str] = None
    status_history: Optional[str] = None
    prior_filings: Optional[str] = None
    criminal_history: Optional[str] = None

    @field_validator(
        "entry_date",
        "manner_of_entry",
        "status_history",
        "prior_filings",
        "criminal_history",
        mode="before",
    )
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        return _present(value, "Must be text")


class DocumentNotes(_Section):
    """Step 3: notes accompanying the uploaded files."""

    notes: Optional[str] = None

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_not_null(cls, value: Any) -> Any:
        return _present(value, "Must be text")


class ConsentInfo(_Section):
    """Step 4: consent checkbox and typed signature."""

    consent: StrictBool
    signature: str
    date_signed: str

    @field_validator("consent")
    @classmethod
    def _must_consent(cls, value: bool) -> bool:
        if value is not True:
            raise ValueError("Consent required")
        return value

    @field_validator("signature")
    @classmethod
    def _signature_length(cls, value: str) -> str:
        if len(value) < 2:
            raise ValueError("Signature must be at least 2 characters")
        return value

    @field_validator("date_signed")
    @classmethod
    def _date_signed_present(cls, value: str) -> str:
        if len(value) < 1:
            raise ValueError("This field is required")
        return value


class IntakePayload(_Section):
    """The complete, validated intake payload."""

    personal: PersonalInfo
    immigration: ImmigrationInfo
    documents: Optional[DocumentNotes] = None
    consent: ConsentInfo

    @field_validator("documents", mode="before")
    @classmethod
    def _documents_not_null(cls, value: Any) -> Any:
        return _present(value, "Must be an object")

    def to_dict(self) -> dict[str, Any]:
        """Serialise with wire (camelCase) keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def section_dict(self, section: str) -> dict[str, Any]:
        """Serialise one section; an absent documents section becomes {}."""
        return self.to_dict().get(section, {})


# Wizard step -> section model. REVIEW is validated against IntakePayload.
STEP_MODELS: Final[dict[WizardStep, type[BaseModel]]] = {
    WizardStep.PERSONAL: PersonalInfo,
    WizardStep.IMMIGRATION: ImmigrationInfo,
    WizardStep.DOCUMENTS: DocumentNotes,
    WizardStep.CONSENT: ConsentInfo,
}


# =============================================================================
# Validation Result
# =============================================================================


@dataclass(frozen=True)
class FieldViolation:
    """A single failed constraint, addressed by dotted field path."""

    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True)
class IntakeValidationResult:
    """
    Result of intake validation.

    Validation failure is an expected outcome, so it is reported here rather
    than raised. On success ``payload`` holds the typed, normalised data.
    """

    valid: bool
    violations: tuple[FieldViolation, ...] = ()
    payload: Optional[BaseModel] = None

    @property
    def is_blocked(self) -> bool:
        """Check if the data must not proceed."""
        return not self.valid

    @property
    def paths(self) -> tuple[str, ...]:
        """Dotted paths of every violated field, in report order."""
        return tuple(v.path for v in self.violations)

    @property
    def errors(self) -> tuple[str, ...]:
        """Violations rendered as ``path: message`` lines for display."""
        return tuple(str(v) for v in self.violations)

    def messages_by_path(self) -> dict[str, list[str]]:
        """Group messages by field path so the UI can annotate each input."""
        grouped: dict[str, list[str]] = {}
        for violation in self.violations:
            grouped.setdefault(violation.path, []).append(violation.message)
        return grouped

    def to_dict(self) -> dict:
        """Convert result to dictionary."""
        return {
            "valid": self.valid,
            "violations": [v.to_dict() for v in self.violations],
        }
