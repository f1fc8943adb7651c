"""
app/mappers/status_rules.py

Ordered keyword tables that normalize source status vocabulary.

Rules are evaluated top to bottom; the first rule with a keyword contained
in the (case-insensitive) source value wins, otherwise the table default
applies. Rule order is significant: "contract" is checked before
"proposal", so a status mentioning both resolves to negotiation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from db.models.crm import LeadStage, LeadTemperature, WorkOrderStatus, WorkType

T = TypeVar("T")


@dataclass(frozen=True)
class StatusRule(Generic[T]):
    keywords: tuple[str, ...]
    result: T

    def matches(self, normalized_value: str) -> bool:
        return any(keyword in normalized_value for keyword in self.keywords)


@dataclass(frozen=True)
class StatusTable(Generic[T]):
    name: str
    rules: Sequence[StatusRule[T]]
    default: T

    def resolve(self, value: str | None) -> T:
        normalized = (value or "").strip().lower()
        if not normalized:
            return self.default
        for rule in self.rules:
            if rule.matches(normalized):
                return rule.result
        return self.default


@dataclass(frozen=True)
class LeadClassification:
    stage: str
    temperature: str


LEAD_STAGE_TABLE: StatusTable[LeadClassification] = StatusTable(
    name="lead_stage",
    rules=(
        StatusRule(("lost", "cancel", "dead", "declined"), LeadClassification(LeadStage.LOST, LeadTemperature.COLD)),
        StatusRule(
            ("complete", "closed", "paid", "won", "invoiced"),
            LeadClassification(LeadStage.WON, LeadTemperature.HOT),
        ),
        StatusRule(
            ("contract", "signed", "approved", "sold", "production"),
            LeadClassification(LeadStage.NEGOTIATION, LeadTemperature.HOT),
        ),
        StatusRule(
            ("proposal", "estimate", "quote", "bid"),
            LeadClassification(LeadStage.PROPOSAL, LeadTemperature.WARM),
        ),
        StatusRule(
            ("prospect", "qualif", "inspect", "appointment"),
            LeadClassification(LeadStage.QUALIFIED, LeadTemperature.WARM),
        ),
    ),
    default=LeadClassification(LeadStage.NEW, LeadTemperature.COLD),
)

WORK_TYPE_TABLE: StatusTable[str] = StatusTable(
    name="work_type",
    rules=(
        StatusRule(("insurance", "claim", "storm", "hail"), WorkType.INSURANCE_CLAIM),
        StatusRule(("gutter",), WorkType.GUTTERS),
        StatusRule(("inspect",), WorkType.INSPECTION),
        StatusRule(("replace", "reroof", "re-roof", "new roof", "tear off", "tear-off"), WorkType.REPLACEMENT),
        StatusRule(("repair", "leak", "patch", "service"), WorkType.REPAIR),
    ),
    default=WorkType.RETAIL,
)

WORK_ORDER_STATUS_TABLE: StatusTable[str] = StatusTable(
    name="work_order_status",
    rules=(
        StatusRule(("cancel", "lost", "dead", "declined"), WorkOrderStatus.CANCELLED),
        StatusRule(("complete", "closed", "paid", "finished", "invoiced"), WorkOrderStatus.COMPLETED),
        StatusRule(("hold", "pause", "suspend"), WorkOrderStatus.ON_HOLD),
        StatusRule(("progress", "production", "started", "working"), WorkOrderStatus.IN_PROGRESS),
        StatusRule(("schedul", "approved", "contract", "signed"), WorkOrderStatus.SCHEDULED),
    ),
    default=WorkOrderStatus.PENDING,
)
