from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from onboarding.core.auth import Role, create_access_token
from onboarding.domain import User
from onboarding.domain.forms import FORM_CATALOG
from onboarding.domain.services import IdentityProvisioner
from onboarding.infrastructure.employee_ids import SequenceEmployeeIdGenerator
from onboarding.infrastructure.identity import LocalIdentityStore
from sqlalchemy.ext.asyncio import AsyncSession

PASSWORD = "correct-horse-8"

_IDENTIFIED = {"employee_name": "Dana Reyes", "employee_id": "EMP000001"}
_SIGNED = {"electronic_signature": "Dana Reyes", "signature_date": "2026-10-01"}

VALID_FIELDS: dict[str, dict[str, Any]] = {
    "compliance-statement": {
        **_IDENTIFIED,
        "position": "Registered Nurse",
        "start_date": "2026-10-05",
        "background_check_completed": True,
        "drug_screening_completed": True,
        "licensure_verification": True,
        "tb_testing_completed": True,
        "required_immunizations_current": True,
        **_SIGNED,
    },
    "confidentiality-agreement": {
        **_IDENTIFIED,
        "department": "Nursing",
        "maintain_confidentiality": True,
        "no_solicitation_agreement": True,
        "privacy_regulations_compliance": True,
        "hipaa_compliance_acknowledgment": True,
        **_SIGNED,
    },
    "direct-deposit": {
        **_IDENTIFIED,
        "bank_name": "First Community Bank",
        "routing_number": "021000021",
        "account_number": "000123456789",
        "account_type": "checking",
        "deposit_type": "full_amount",
        "authorization_agreement": True,
        **_SIGNED,
    },
    "health-statement": {
        **_IDENTIFIED,
        "immunizations_current": True,
        "tb_screening_completed": True,
        "health_insurance_coverage": False,
        "emergency_contact_name": "Sam Reyes",
        "emergency_contact_phone": "555-0100",
        "emergency_contact_relationship": "Sibling",
        **_SIGNED,
    },
    "hepatitis-b": {
        "employee_name": "Dana Reyes",
        "date_of_hire": "2026-10-05",
        "vaccine_choice": "waive",
        "employee_signature": "Dana Reyes",
        "signature_date": "2026-10-01",
    },
    "field-practice": {
        **_IDENTIFIED,
        "practice_guidelines_acknowledged": True,
        "field_procedures_understood": True,
        "safety_protocols_agreed": True,
        **_SIGNED,
    },
    "influenza-declination": {
        **_IDENTIFIED,
        "acknowledgment_read": True,
        "mask_requirement_understood": True,
        "declination_signature": "Dana Reyes",
        "signature_date": "2026-10-01",
    },
    "job-acceptance": {
        **_IDENTIFIED,
        "position_accepted": "Registered Nurse",
        "start_date": "2026-10-05",
        "salary_acknowledged": True,
        "benefits_understood": True,
        **_SIGNED,
    },
    "job-description": {
        **_IDENTIFIED,
        "job_duties_understood": True,
        "responsibilities_acknowledged": True,
        "requirements_met": True,
        **_SIGNED,
    },
    "ppe-acknowledgement": {
        **_IDENTIFIED,
        "ppe_training_completed": True,
        "equipment_received": True,
        "usage_guidelines_understood": True,
        **_SIGNED,
    },
    "policies-procedures": {
        **_IDENTIFIED,
        "policies_read": True,
        "procedures_understood": True,
        "compliance_agreed": True,
        **_SIGNED,
    },
    "handbook-acknowledgment": {
        **_IDENTIFIED,
        "handbook_received": True,
        "handbook_read": True,
        "policies_understood": True,
        **_SIGNED,
    },
    "tb-questionnaire": {
        **_IDENTIFIED,
        "tb_symptoms_present": False,
        "tb_exposure_history": False,
        "chest_xray_completed": True,
        "medical_clearance": True,
        **_SIGNED,
    },
}

assert set(VALID_FIELDS) == set(FORM_CATALOG)


def valid_fields(form_type: str, **overrides: Any) -> dict[str, Any]:
    return {**VALID_FIELDS[form_type], **overrides}


async def create_account(
    session: AsyncSession,
    email: str,
    *,
    role: Role = Role.EMPLOYEE,
    profile: Mapping[str, Any] | None = None,
) -> User:
    """Provision an account through the real identity store and return it as a caller."""
    provisioner = IdentityProvisioner(
        session, LocalIdentityStore(session), SequenceEmployeeIdGenerator(session)
    )
    provisioned = await provisioner.provision(
        email, PASSWORD, role.value, profile, allowed_roles=(role.value,)
    )
    account = provisioned.account
    return User(
        user_id=account.id,
        role=role,
        email=account.email,
        full_name=account.full_name,
        employee_id=account.employee_id,
        department=account.department,
    )


def auth_headers(user: User, *, session_id: str | None = None) -> dict[str, str]:
    token = create_access_token(
        user.user_id, roles=[user.role.value], email=user.email, session_id=session_id
    )
    return {"Authorization": f"Bearer {token}"}
