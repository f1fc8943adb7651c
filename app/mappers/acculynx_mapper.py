"""
app/mappers/acculynx_mapper.py

Pure transforms from AccuLynx API records to target CRM creation payloads.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.domain.crm_payloads import (
    Address,
    ContactPayload,
    JobFanOut,
    LeadPayload,
    PropertyPayload,
    WorkOrderPayload,
)
from app.mappers.status_rules import LEAD_STAGE_TABLE, WORK_ORDER_STATUS_TABLE, WORK_TYPE_TABLE
from db.base import EXTERNAL_ID_MAX_LENGTH

DEFAULT_FIRST_NAME = "Unknown"
DEFAULT_LAST_NAME = "Contact"
PLACEHOLDER_EXTERNAL_ID = "__placeholder__"
PLACEHOLDER_FIRST_NAME = "Unassigned"
PLACEHOLDER_LAST_NAME = "Contact"
FIRST_NAME_KEYS = ("firstName", "first_name")
LAST_NAME_KEYS = ("lastName", "last_name")

_SLUG_FRAGMENT_LENGTH = 8
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
_CENT = Decimal("1")


class MappingError(ValueError):
    """
    Raised when an external record cannot be translated into target payloads.
    """


def to_minor_units(amount: Any) -> int | None:
    """
    Convert a decimal major-unit amount to integer minor units (cents).

    Rounds half up rather than truncating. Absent amounts map to None.
    """

    if amount is None:
        return None
    if isinstance(amount, bool):
        raise MappingError(f"Invalid monetary amount: {amount!r}")
    if isinstance(amount, str):
        amount = amount.strip().replace(",", "").lstrip("$")
        if not amount:
            return None

    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise MappingError(f"Invalid monetary amount: {amount!r}") from exc
    if not value.is_finite():
        raise MappingError(f"Invalid monetary amount: {amount!r}")

    return int((value * 100).quantize(_CENT, rounding=ROUND_HALF_UP))


def slugify(value: str) -> str:
    return _NON_SLUG_CHARS.sub("-", value.lower()).strip("-")


def build_contact_slug(first_name: str, last_name: str, external_id: str) -> str:
    """
    Name-based slug suffixed with a short fragment of the external id so
    same-named contacts do not collide.
    """

    base = slugify(f"{first_name} {last_name}") or "contact"
    fragment = "".join(ch for ch in external_id.lower() if ch.isalnum())[:_SLUG_FRAGMENT_LENGTH]
    return f"{base}-{fragment}" if fragment else base


def _text(record: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = record.get(key)
        if isinstance(value, Mapping):
            value = value.get("name") or value.get("value")
        if value is None:
            continue
        stripped = str(value).strip()
        if stripped:
            return stripped
    return None


def record_external_id(record: Any) -> str | None:
    """
    Return the source id of a raw record, or None when it has none.
    """

    if not isinstance(record, Mapping):
        return None
    return _text(record, "id", "jnid")


def has_contact_name(record: Any) -> bool:
    """
    True when the record carries a first or last name under any key the mapper reads.
    """

    if not isinstance(record, Mapping):
        return False
    return bool(_text(record, *FIRST_NAME_KEYS) or _text(record, *LAST_NAME_KEYS))


def _external_id(record: Any, *, kind: str) -> str:
    if not isinstance(record, Mapping):
        raise MappingError(f"{kind} record must be an object, got {type(record).__name__}")
    external_id = record_external_id(record)
    if external_id is None:
        raise MappingError(f"{kind} record has no id")
    if len(external_id) > EXTERNAL_ID_MAX_LENGTH:
        raise MappingError(f"{kind} record id exceeds {EXTERNAL_ID_MAX_LENGTH} characters")
    return external_id


def _address(record: Mapping[str, Any]) -> Address:
    raw = record.get("address") or record.get("mailingAddress") or record.get("location")
    if not isinstance(raw, Mapping):
        return Address()

    street_parts = [
        _text(raw, "street1", "street", "addressLine1", "line1"),
        _text(raw, "street2", "addressLine2", "line2"),
    ]
    street = " ".join(part for part in street_parts if part) or None
    state = raw.get("state")
    if isinstance(state, Mapping):
        state = state.get("abbreviation") or state.get("name")
    state_text = str(state).strip() if state else ""

    return Address(
        street=street,
        city=_text(raw, "city"),
        state=state_text or None,
        postal_code=_text(raw, "zipCode", "postalCode", "zip"),
        country=_text(raw, "country"),
    )


def _linked_contact_id(record: Mapping[str, Any]) -> str | None:
    direct = _text(record, "contactId", "primaryContactId")
    if direct:
        return direct
    for key in ("primaryContact", "contact"):
        nested = record.get(key)
        if isinstance(nested, Mapping):
            nested_id = _text(nested, "id")
            if nested_id:
                return nested_id
    return None


class AccuLynxMapper:
    """
    Stateless mapper from AccuLynx contacts and jobs to CRM payloads.
    """

    def __init__(self, *, source_name: str = "acculynx") -> None:
        self._source_name = source_name

    def map_contact(self, record: Any) -> ContactPayload:
        external_id = _external_id(record, kind="contact")
        first_name = _text(record, *FIRST_NAME_KEYS) or DEFAULT_FIRST_NAME
        last_name = _text(record, *LAST_NAME_KEYS) or DEFAULT_LAST_NAME

        return ContactPayload(
            external_id=external_id,
            first_name=first_name,
            last_name=last_name,
            slug=build_contact_slug(first_name, last_name, external_id),
            email=_text(record, "email", "emailAddress"),
            phone=_text(record, "phone", "phoneNumber", "mobilePhone"),
            company_name=_text(record, "companyName", "company"),
            address=_address(record),
        )

    def placeholder_contact(self, org_id: str) -> ContactPayload:
        return ContactPayload(
            external_id=PLACEHOLDER_EXTERNAL_ID,
            first_name=PLACEHOLDER_FIRST_NAME,
            last_name=PLACEHOLDER_LAST_NAME,
            slug=build_contact_slug(PLACEHOLDER_FIRST_NAME, PLACEHOLDER_LAST_NAME, org_id),
            is_placeholder=True,
        )

    def map_job(self, record: Any) -> JobFanOut:
        """
        Split one external job into property, lead and work order payloads.
        """

        external_id = _external_id(record, kind="job")
        name = _text(record, "name", "jobName", "title")
        status = _text(record, "status", "currentMilestone", "milestone")
        job_type = _text(record, "type", "jobType", "workType", "tradeType")
        value_cents = to_minor_units(record.get("estimatedValue", record.get("value")))
        address = _address(record)
        title = name or f"AccuLynx job {external_id}"

        classification = LEAD_STAGE_TABLE.resolve(status)
        property_payload = PropertyPayload(
            external_id=external_id,
            name=address.one_line() or title,
            address=address,
        )
        lead_payload = LeadPayload(
            external_id=external_id,
            title=title,
            stage=classification.stage,
            temperature=classification.temperature,
            value_cents=value_cents,
            source=self._source_name,
        )
        work_order_payload = WorkOrderPayload(
            external_id=external_id,
            title=title,
            status=WORK_ORDER_STATUS_TABLE.resolve(status),
            work_type=WORK_TYPE_TABLE.resolve(job_type or name),
            value_cents=value_cents,
            description=_text(record, "description", "notes"),
        )

        return JobFanOut(
            external_id=external_id,
            linked_contact_external_id=_linked_contact_id(record),
            property=property_payload,
            lead=lead_payload,
            work_order=work_order_payload,
        )
