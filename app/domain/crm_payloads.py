"""
app/domain/crm_payloads.py

Creation payloads produced by mappers for the target CRM entities.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class Address:
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.street, self.city, self.state, self.postal_code))

    def one_line(self) -> str:
        parts = [self.street, self.city, " ".join(p for p in (self.state, self.postal_code) if p)]
        return ", ".join(part for part in parts if part)


@dataclass(frozen=True)
class ContactPayload:
    external_id: str
    first_name: str
    last_name: str
    slug: str
    email: str | None = None
    phone: str | None = None
    company_name: str | None = None
    address: Address = Address()
    is_placeholder: bool = False

    def to_values(self) -> dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "slug": self.slug,
            "email": self.email,
            "phone": self.phone,
            "company_name": self.company_name,
            "is_placeholder": self.is_placeholder,
            **asdict(self.address),
        }


@dataclass(frozen=True)
class PropertyPayload:
    external_id: str
    name: str
    address: Address = Address()
    property_type: str = "residential"

    def to_values(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "property_type": self.property_type,
            **asdict(self.address),
        }


@dataclass(frozen=True)
class LeadPayload:
    external_id: str
    title: str
    stage: str
    temperature: str
    value_cents: int | None
    source: str

    def to_values(self, *, contact_id: Any, property_id: Any | None) -> dict[str, Any]:
        return {
            "title": self.title,
            "stage": self.stage,
            "temperature": self.temperature,
            "value_cents": self.value_cents,
            "source": self.source,
            "contact_id": contact_id,
            "property_id": property_id,
        }


@dataclass(frozen=True)
class WorkOrderPayload:
    external_id: str
    title: str
    status: str
    work_type: str
    value_cents: int | None
    description: str | None = None

    def to_values(self, *, property_id: Any, contact_id: Any | None, lead_id: Any | None) -> dict[str, Any]:
        return {
            "title": self.title,
            "status": self.status,
            "work_type": self.work_type,
            "value_cents": self.value_cents,
            "description": self.description,
            "property_id": property_id,
            "contact_id": contact_id,
            "lead_id": lead_id,
        }


@dataclass(frozen=True)
class JobFanOut:
    """
    One external job split into the three target entities it describes.
    """

    external_id: str
    linked_contact_external_id: str | None
    property: PropertyPayload
    lead: LeadPayload
    work_order: WorkOrderPayload
