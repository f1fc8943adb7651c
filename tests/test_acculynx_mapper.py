"""
tests/test_acculynx_mapper.py

Pure mapper tests: no database, no I/O.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.mappers import (
    PLACEHOLDER_EXTERNAL_ID,
    AccuLynxMapper,
    MappingError,
    build_contact_slug,
    has_contact_name,
    record_external_id,
    to_minor_units,
)
from db.models.crm import LeadStage, LeadTemperature, WorkOrderStatus, WorkType
from tests.factories import make_contact, make_job


@pytest.fixture()
def mapper() -> AccuLynxMapper:
    return AccuLynxMapper(source_name="acculynx")


class TestToMinorUnits:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [
            (1234.5, 123450),
            ("1234.50", 123450),
            ("$1,234.56", 123456),
            (Decimal("19.999"), 2000),
            (0.125, 13),
            (10, 1000),
            (0, 0),
        ],
    )
    def test_converts_major_units_with_half_up_rounding(self, amount, expected) -> None:
        assert to_minor_units(amount) == expected

    def test_float_representation_error_does_not_truncate(self) -> None:
        assert to_minor_units(19.99) == 1999
        assert to_minor_units(0.29) == 29

    def test_absent_amount_is_none_not_zero(self) -> None:
        assert to_minor_units(None) is None
        assert to_minor_units("") is None

    @pytest.mark.parametrize("amount", ["abc", True, float("nan"), "Infinity"])
    def test_invalid_amount_raises(self, amount) -> None:
        with pytest.raises(MappingError):
            to_minor_units(amount)


class TestContactMapping:
    def test_maps_fields_and_flattens_address(self, mapper) -> None:
        record = make_contact(
            "AbC-123-xyz-999",
            first="Mary",
            last="O'Neil",
            email="mary@example.com",
            phone="555-0100",
            companyName="Acme Roofing",
            address={
                "street1": "1 Elm St",
                "street2": "Unit 4",
                "city": "Dallas",
                "state": {"abbreviation": "TX"},
                "zipCode": "75001",
            },
        )

        payload = mapper.map_contact(record)

        assert payload.external_id == "AbC-123-xyz-999"
        assert payload.first_name == "Mary"
        assert payload.last_name == "O'Neil"
        assert payload.slug == "mary-o-neil-abc123xy"
        assert payload.email == "mary@example.com"
        assert payload.company_name == "Acme Roofing"
        assert payload.address.street == "1 Elm St Unit 4"
        assert payload.address.state == "TX"
        assert payload.address.postal_code == "75001"
        assert payload.is_placeholder is False

    def test_missing_names_use_defaults(self, mapper) -> None:
        payload = mapper.map_contact({"id": "c-1", "firstName": "  ", "lastName": None})

        assert payload.first_name == "Unknown"
        assert payload.last_name == "Contact"

    def test_missing_id_raises(self, mapper) -> None:
        with pytest.raises(MappingError, match="no id"):
            mapper.map_contact({"firstName": "No", "lastName": "Id"})

    def test_over_long_id_raises(self, mapper) -> None:
        with pytest.raises(MappingError, match="exceeds 128"):
            mapper.map_contact(make_contact("c" * 129))

    def test_non_object_record_raises(self, mapper) -> None:
        with pytest.raises(MappingError):
            mapper.map_contact(["not", "a", "dict"])

    def test_to_values_matches_contact_columns(self, mapper) -> None:
        values = mapper.map_contact(make_contact("c-2")).to_values()

        assert set(values) == {
            "first_name",
            "last_name",
            "slug",
            "email",
            "phone",
            "company_name",
            "is_placeholder",
            "street",
            "city",
            "state",
            "postal_code",
            "country",
        }


class TestPlaceholderContact:
    def test_placeholder_is_deterministic_per_org(self, mapper) -> None:
        first = mapper.placeholder_contact("org_1")
        second = mapper.placeholder_contact("org_1")

        assert first == second
        assert first.external_id == PLACEHOLDER_EXTERNAL_ID
        assert first.is_placeholder is True
        assert first.first_name and first.last_name


class TestJobMapping:
    def test_fans_out_into_property_lead_and_work_order(self, mapper) -> None:
        record = make_job("J-1", contact_id="C-7", status="Contract Signed", value="2500.005")

        fan_out = mapper.map_job(record)

        assert fan_out.external_id == "J-1"
        assert fan_out.linked_contact_external_id == "C-7"
        assert fan_out.property.name == "J-1 Main St, Austin, TX 78701"
        assert fan_out.lead.stage == LeadStage.NEGOTIATION
        assert fan_out.lead.temperature == LeadTemperature.HOT
        assert fan_out.lead.value_cents == 250001
        assert fan_out.lead.source == "acculynx"
        assert fan_out.work_order.status == WorkOrderStatus.SCHEDULED
        assert fan_out.work_order.work_type == WorkType.INSURANCE_CLAIM
        assert fan_out.work_order.value_cents == 250001

    def test_absent_value_stays_none(self, mapper) -> None:
        record = make_job("J-2", value=None)

        fan_out = mapper.map_job(record)

        assert fan_out.lead.value_cents is None
        assert fan_out.work_order.value_cents is None

    def test_nested_primary_contact_is_linked(self, mapper) -> None:
        record = make_job("J-3", primaryContact={"id": "C-9", "name": "Pat"})

        assert mapper.map_job(record).linked_contact_external_id == "C-9"

    def test_job_without_contact_or_address(self, mapper) -> None:
        fan_out = mapper.map_job({"id": "J-4"})

        assert fan_out.linked_contact_external_id is None
        assert fan_out.property.address.is_empty
        assert fan_out.property.name == "AccuLynx job J-4"
        assert fan_out.lead.title == "AccuLynx job J-4"
        assert fan_out.work_order.work_type == WorkType.RETAIL

    def test_work_type_falls_back_to_job_name(self, mapper) -> None:
        fan_out = mapper.map_job({"id": "J-5", "name": "Gutter replacement"})

        assert fan_out.work_order.work_type == WorkType.GUTTERS

    def test_invalid_value_raises(self, mapper) -> None:
        with pytest.raises(MappingError):
            mapper.map_job(make_job("J-6", value="twelve"))


class TestHelpers:
    def test_slug_suffix_keeps_same_names_distinct(self) -> None:
        assert build_contact_slug("Jane", "Doe", "111") != build_contact_slug("Jane", "Doe", "222")

    def test_slug_without_usable_name_or_id(self) -> None:
        assert build_contact_slug("", "", "") == "contact"

    def test_record_external_id(self) -> None:
        assert record_external_id({"id": 42}) == "42"
        assert record_external_id({"jnid": "x1"}) == "x1"
        assert record_external_id({"name": "no id"}) is None
        assert record_external_id("nope") is None

    def test_has_contact_name_reads_every_name_key(self) -> None:
        assert has_contact_name({"firstName": "Ann"}) is True
        assert has_contact_name({"last_name": "Lee"}) is True
        assert has_contact_name({"firstName": "  ", "lastName": None}) is False
        assert has_contact_name("junk") is False
