"""Form catalog: every onboarding form an employee must complete.

The catalog is the single source of truth for which form types exist, what
fields each one carries, and which set of forms makes onboarding complete.
It is built at import time and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Annotated, Any, Literal

from onboarding.domain.errors import ValidationError
from pydantic import BaseModel, ConfigDict, Field, StrictBool
from pydantic import ValidationError as PydanticValidationError

RequiredText = Annotated[str, Field(min_length=1, max_length=512)]
OptionalText = str | None


class FormPayload(BaseModel):
    """Fields shared by every form: all require a dated signature."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    signature_date: date


class IdentifiedFormPayload(FormPayload):
    employee_name: RequiredText
    employee_id: RequiredText


class ComplianceStatementForm(IdentifiedFormPayload):
    position: RequiredText
    start_date: date
    background_check_completed: StrictBool
    drug_screening_completed: StrictBool
    licensure_verification: StrictBool
    tb_testing_completed: StrictBool
    required_immunizations_current: StrictBool
    electronic_signature: RequiredText


class ConfidentialityAgreementForm(IdentifiedFormPayload):
    department: RequiredText
    maintain_confidentiality: StrictBool
    no_solicitation_agreement: StrictBool
    privacy_regulations_compliance: StrictBool
    hipaa_compliance_acknowledgment: StrictBool
    electronic_signature: RequiredText


class DirectDepositForm(IdentifiedFormPayload):
    bank_name: RequiredText
    routing_number: Annotated[str, Field(min_length=9, max_length=9)]
    account_number: RequiredText
    account_type: Literal["checking", "savings"]
    deposit_type: Literal["full_amount", "partial_amount"]
    authorization_agreement: StrictBool
    electronic_signature: RequiredText


class HealthStatementForm(IdentifiedFormPayload):
    chronic_medical_conditions: OptionalText = None
    current_medications: OptionalText = None
    known_allergies: OptionalText = None
    immunizations_current: StrictBool
    tb_screening_completed: StrictBool
    health_insurance_coverage: StrictBool
    emergency_contact_name: RequiredText
    emergency_contact_phone: RequiredText
    emergency_contact_relationship: RequiredText
    electronic_signature: RequiredText


class HepatitisBForm(FormPayload):
    employee_name: RequiredText
    date_of_hire: date
    social_security_number: OptionalText = None
    vaccine_choice: Literal["waive", "receive"]
    series_1_date: date | None = None
    series_2_date: date | None = None
    series_3_date: date | None = None
    employee_signature: RequiredText
    mmo_rep_signature: OptionalText = None


class FieldPracticeForm(IdentifiedFormPayload):
    practice_guidelines_acknowledged: StrictBool
    field_procedures_understood: StrictBool
    safety_protocols_agreed: StrictBool
    electronic_signature: RequiredText


class InfluenzaDeclinationForm(IdentifiedFormPayload):
    acknowledgment_read: StrictBool
    mask_requirement_understood: StrictBool
    declination_signature: RequiredText
    witness_signature: OptionalText = None
    witness_date: date | None = None


class JobAcceptanceForm(IdentifiedFormPayload):
    position_accepted: RequiredText
    start_date: date
    salary_acknowledged: StrictBool
    benefits_understood: StrictBool
    electronic_signature: RequiredText


class JobDescriptionForm(IdentifiedFormPayload):
    job_duties_understood: StrictBool
    responsibilities_acknowledged: StrictBool
    requirements_met: StrictBool
    electronic_signature: RequiredText


class PPEAcknowledgementForm(IdentifiedFormPayload):
    ppe_training_completed: StrictBool
    equipment_received: StrictBool
    usage_guidelines_understood: StrictBool
    electronic_signature: RequiredText


class PoliciesProceduresForm(IdentifiedFormPayload):
    policies_read: StrictBool
    procedures_understood: StrictBool
    compliance_agreed: StrictBool
    electronic_signature: RequiredText


class HandbookAcknowledgmentForm(IdentifiedFormPayload):
    handbook_received: StrictBool
    handbook_read: StrictBool
    policies_understood: StrictBool
    electronic_signature: RequiredText


class TBQuestionnaireForm(IdentifiedFormPayload):
    tb_symptoms_present: StrictBool
    tb_exposure_history: StrictBool
    chest_xray_completed: StrictBool
    medical_clearance: StrictBool
    electronic_signature: RequiredText


@dataclass(frozen=True, slots=True)
class FormTypeDescriptor:
    """Catalog entry describing one form type."""

    identifier: str
    label: str
    schema: type[FormPayload]
    signature_field: str = "electronic_signature"

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(
            name for name, info in self.schema.model_fields.items() if info.is_required()
        )

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self.schema.model_fields)

    def validate(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Check ``fields`` against this form's schema.

        Returns the normalized, JSON-ready field mapping. Raises
        ``ValidationError`` naming the first offending field.
        """
        try:
            parsed = self.schema.model_validate(dict(fields))
        except PydanticValidationError as exc:
            raise _first_violation(exc) from exc
        return parsed.model_dump(mode="json")


def _first_violation(exc: PydanticValidationError) -> ValidationError:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or "fields"
    if error["type"] == "missing":
        message = f'"{field}" is required'
    elif error["type"] == "extra_forbidden":
        message = f'"{field}" is not allowed'
    else:
        message = f'"{field}" {error["msg"][0].lower()}{error["msg"][1:]}'
    return ValidationError(field, message)


_DESCRIPTORS = (
    FormTypeDescriptor("compliance-statement", "Compliance Statement", ComplianceStatementForm),
    FormTypeDescriptor(
        "confidentiality-agreement", "Confidentiality Agreement", ConfidentialityAgreementForm
    ),
    FormTypeDescriptor("direct-deposit", "Direct Deposit Authorization", DirectDepositForm),
    FormTypeDescriptor("health-statement", "Health Statement", HealthStatementForm),
    FormTypeDescriptor(
        "hepatitis-b",
        "Hepatitis B Vaccination",
        HepatitisBForm,
        signature_field="employee_signature",
    ),
    FormTypeDescriptor("field-practice", "Field Practice Statement", FieldPracticeForm),
    FormTypeDescriptor(
        "influenza-declination",
        "Influenza Vaccination Declination",
        InfluenzaDeclinationForm,
        signature_field="declination_signature",
    ),
    FormTypeDescriptor("job-acceptance", "Job Acceptance", JobAcceptanceForm),
    FormTypeDescriptor(
        "job-description", "Job Description Acknowledgment", JobDescriptionForm
    ),
    FormTypeDescriptor("ppe-acknowledgement", "PPE Acknowledgement", PPEAcknowledgementForm),
    FormTypeDescriptor(
        "policies-procedures", "Policies & Procedures Statement", PoliciesProceduresForm
    ),
    FormTypeDescriptor(
        "handbook-acknowledgment",
        "Employee Handbook Acknowledgment",
        HandbookAcknowledgmentForm,
    ),
    FormTypeDescriptor("tb-questionnaire", "TB Medical Questionnaire", TBQuestionnaireForm),
)

FORM_CATALOG: Mapping[str, FormTypeDescriptor] = MappingProxyType(
    {descriptor.identifier: descriptor for descriptor in _DESCRIPTORS}
)

REQUIRED_FORM_TYPES: frozenset[str] = frozenset(FORM_CATALOG)


def get_form_type(form_type: str) -> FormTypeDescriptor:
    """Look up a catalog entry, raising ``ValidationError`` for unknown types."""
    try:
        return FORM_CATALOG[form_type]
    except KeyError:
        raise ValidationError("form_type", f'Unknown form type "{form_type}"') from None


def validate_form_fields(form_type: str, fields: Mapping[str, Any]) -> dict[str, Any]:
    return get_form_type(form_type).validate(fields)


__all__ = [
    "FORM_CATALOG",
    "REQUIRED_FORM_TYPES",
    "FormPayload",
    "FormTypeDescriptor",
    "get_form_type",
    "validate_form_fields",
]
