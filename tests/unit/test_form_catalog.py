"""Unit tests for the onboarding form catalog."""

from __future__ import annotations

import pytest
from onboarding.domain.errors import ValidationError
from onboarding.domain.forms import (
    FORM_CATALOG,
    REQUIRED_FORM_TYPES,
    get_form_type,
    validate_form_fields,
)
from tests.utils import valid_fields


class TestCatalogContents:
    def test_catalog_lists_thirteen_required_forms(self) -> None:
        assert len(FORM_CATALOG) == 13
        assert REQUIRED_FORM_TYPES == frozenset(FORM_CATALOG)
        assert "compliance-statement" in FORM_CATALOG
        assert "tb-questionnaire" in FORM_CATALOG

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            FORM_CATALOG["new-form"] = FORM_CATALOG["job-description"]  # type: ignore[index]

    def test_signature_field_varies_by_form(self) -> None:
        assert get_form_type("compliance-statement").signature_field == "electronic_signature"
        assert get_form_type("hepatitis-b").signature_field == "employee_signature"
        assert get_form_type("influenza-declination").signature_field == "declination_signature"

    def test_compliance_statement_required_fields(self) -> None:
        required = set(get_form_type("compliance-statement").required_fields)

        assert {
            "employee_name",
            "employee_id",
            "position",
            "start_date",
            "background_check_completed",
            "drug_screening_completed",
            "licensure_verification",
            "tb_testing_completed",
            "required_immunizations_current",
            "electronic_signature",
            "signature_date",
        } == required

    def test_optional_fields_are_not_required(self) -> None:
        descriptor = get_form_type("health-statement")

        assert "known_allergies" in descriptor.fields
        assert "known_allergies" not in descriptor.required_fields

    def test_unknown_form_type_is_a_validation_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            get_form_type("w4-withholding")

        assert exc_info.value.field == "form_type"


class TestFieldValidation:
    @pytest.mark.parametrize("form_type", sorted(FORM_CATALOG))
    def test_valid_payload_is_accepted(self, form_type: str) -> None:
        normalized = validate_form_fields(form_type, valid_fields(form_type))

        assert normalized["signature_date"] == "2026-10-01"

    def test_missing_field_is_named(self) -> None:
        fields = valid_fields("compliance-statement")
        del fields["licensure_verification"]

        with pytest.raises(ValidationError) as exc_info:
            validate_form_fields("compliance-statement", fields)

        assert exc_info.value.field == "licensure_verification"
        assert "required" in exc_info.value.message

    def test_unexpected_field_is_rejected(self) -> None:
        fields = valid_fields("job-description", favourite_colour="green")

        with pytest.raises(ValidationError) as exc_info:
            validate_form_fields("job-description", fields)

        assert exc_info.value.field == "favourite_colour"
        assert "not allowed" in exc_info.value.message

    def test_booleans_must_be_booleans(self) -> None:
        fields = valid_fields("ppe-acknowledgement", equipment_received="yes")

        with pytest.raises(ValidationError) as exc_info:
            validate_form_fields("ppe-acknowledgement", fields)

        assert exc_info.value.field == "equipment_received"

    def test_dates_must_be_iso_dates(self) -> None:
        fields = valid_fields("job-acceptance", start_date="next monday")

        with pytest.raises(ValidationError) as exc_info:
            validate_form_fields("job-acceptance", fields)

        assert exc_info.value.field == "start_date"

    def test_routing_number_must_be_nine_characters(self) -> None:
        fields = valid_fields("direct-deposit", routing_number="12345")

        with pytest.raises(ValidationError) as exc_info:
            validate_form_fields("direct-deposit", fields)

        assert exc_info.value.field == "routing_number"

    def test_choice_fields_reject_unknown_values(self) -> None:
        fields = valid_fields("hepatitis-b", vaccine_choice="maybe")

        with pytest.raises(ValidationError) as exc_info:
            validate_form_fields("hepatitis-b", fields)

        assert exc_info.value.field == "vaccine_choice"

    def test_blank_signature_is_rejected(self) -> None:
        fields = valid_fields("tb-questionnaire", electronic_signature="   ")

        with pytest.raises(ValidationError) as exc_info:
            validate_form_fields("tb-questionnaire", fields)

        assert exc_info.value.field == "electronic_signature"
