"""Pydantic models used for request and response bodies.

These data transfer objects (DTOs) mirror the domain models but add
validation and serialization helpers for the API layer. JSON uses camelCase
to match the dashboard; snake_case field names are accepted as well.
Request models validate once and convert to immutable domain records with
``to_domain()``; response models are built straight from domain records.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, List

import pytz
from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from . import models


def _aware(value: datetime | None) -> datetime | None:
    """Treat naive timestamps as UTC."""
    if value is not None and value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
        frozen = True


class PartRequirement(CamelModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(1, ge=1)


class RepairOrder(CamelModel):
    """Repair ticket as sent by the dashboard.

    Example:
        >>> RepairOrder(
        ...     id="rep_1",
        ...     device_model="iPhone 13",
        ...     issue_description="Pantalla rota",
        ...     urgency=4,
        ...     created_at=datetime(2024, 1, 1, 9, 0),
        ... )
    """

    id: str = Field(min_length=1)
    customer_name: str = ""
    device_model: str = ""
    issue_description: str = ""
    urgency: int = Field(1, ge=1)
    technical_complexity: int = Field(1, ge=1)
    historical_value: float | None = Field(None, ge=0)
    created_at: datetime
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    stage: str = models.RepairStage.RECEIVED.value
    diagnosis: str | None = None
    solution: str | None = None
    parts: List[PartRequirement] = []
    customer_phone: str | None = None
    customer_email: EmailStr | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "rep_1",
                "customerName": "Ana",
                "deviceModel": "iPhone 13",
                "issueDescription": "Pantalla rota, no responde el táctil",
                "urgency": 4,
                "technicalComplexity": 2,
                "historicalValue": 120,
                "createdAt": "2024-01-01T09:00:00Z",
                "stage": "diagnosis",
            }
        }

    def to_domain(self) -> models.RepairOrder:
        return models.RepairOrder(
            id=self.id,
            customer_name=self.customer_name,
            device_model=self.device_model,
            issue_description=self.issue_description,
            urgency=self.urgency,
            technical_complexity=self.technical_complexity,
            historical_value=self.historical_value,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
            completed_at=_aware(self.completed_at),
            stage=self.stage,
            diagnosis=self.diagnosis,
            solution=self.solution,
            parts=tuple(
                models.PartRequirement(p.product_id, p.quantity) for p in self.parts
            ),
            customer_phone=self.customer_phone,
            customer_email=self.customer_email,
        )


def _unique_ids(repairs: List[RepairOrder]) -> List[RepairOrder]:
    seen = set()
    for repair in repairs:
        if repair.id in seen:
            raise ValueError(f"Duplicate repair id: {repair.id}")
        seen.add(repair.id)
    return repairs


class ProductStock(CamelModel):
    """Inventory snapshot for one part.

    Example:
        >>> ProductStock(id="prd_1", name="Pantalla iPhone 13", quantity_available=2)
    """

    id: str = Field(min_length=1)
    name: str
    quantity_available: int = Field(ge=0)
    reorder_threshold: int | None = Field(None, ge=0)
    sku: str | None = None
    category: str | None = None
    unit_cost: float = Field(0.0, ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "id": "prd_1",
                "sku": "PNT-IP13",
                "name": "Pantalla iPhone 13",
                "quantityAvailable": 2,
                "reorderThreshold": 1,
                "unitCost": 60,
            }
        }

    def to_domain(self) -> models.ProductStock:
        return models.ProductStock(
            id=self.id,
            name=self.name,
            quantity_available=self.quantity_available,
            reorder_threshold=self.reorder_threshold,
            sku=self.sku,
            category=self.category,
            unit_cost=self.unit_cost,
        )


class PriorityRule(CamelModel):
    keyword: str = Field(min_length=1)
    boost: float = Field(ge=0)


class PriorityConfig(CamelModel):
    urgency_weight: float
    wait_time_weight: float
    historical_value_weight: float
    technical_complexity_weight: float
    urgency_scale: float
    complexity_scale: float
    wait_time_scale_hours: float
    historical_value_cap: float
    rules: List[PriorityRule] = []


class PriorityConfigUpdate(CamelModel):
    """Partial override; omitted fields keep their current value."""

    urgency_weight: float | None = Field(None, ge=0)
    wait_time_weight: float | None = Field(None, ge=0)
    historical_value_weight: float | None = Field(None, ge=0)
    technical_complexity_weight: float | None = Field(None, ge=0)
    urgency_scale: float | None = Field(None, gt=0)
    complexity_scale: float | None = Field(None, gt=0)
    wait_time_scale_hours: float | None = Field(None, gt=0)
    historical_value_cap: float | None = Field(None, gt=0)
    rules: List[PriorityRule] | None = None

    class Config:
        json_schema_extra = {
            "example": {"urgencyWeight": 0.5, "waitTimeWeight": 0.3}
        }

    def changes(self) -> Dict[str, object]:
        values = {
            name: value
            for name, value in self.model_dump(exclude_none=True).items()
            if name != "rules"
        }
        if self.rules is not None:
            values["rules"] = tuple(
                models.PriorityRule(rule.keyword, rule.boost) for rule in self.rules
            )
        return values

    def apply(self, base: models.PriorityConfig) -> models.PriorityConfig:
        return replace(base, **self.changes())


class PriorityRequest(CamelModel):
    config: PriorityConfigUpdate | None = None
    repairs: List[RepairOrder] | None = None

    @field_validator("repairs")
    @classmethod
    def check_unique_ids(cls, value):
        return _unique_ids(value) if value is not None else value


class ScoredRepair(CamelModel):
    id: str
    score: float
    rank: int
    repair: RepairOrder


class PriorityResponse(CamelModel):
    queue: List[ScoredRepair]
    config: PriorityConfig


class AnalyticsRequest(CamelModel):
    repairs: List[RepairOrder]
    issue_text: str | None = None

    @field_validator("repairs")
    @classmethod
    def check_unique_ids(cls, value):
        return _unique_ids(value)


class DurationEstimate(CamelModel):
    key: str
    device_type: str
    issue_category: str
    sample_size: int
    mean_hours: float
    median_hours: float
    p90_hours: float
    min_hours: float
    max_hours: float


class SymptomCorrelation(CamelModel):
    first: str
    second: str
    co_occurrences: int
    strength: float


class DiagnosisRecommendation(CamelModel):
    diagnosis: str
    solution: str | None = None
    confidence: float
    support: int
    repair_ids: List[str]


class AnalyticsResponse(CamelModel):
    metrics: Dict[str, DurationEstimate]
    correlations: List[SymptomCorrelation]
    recommendations: List[DiagnosisRecommendation]


class InventoryRequest(CamelModel):
    repairs: List[RepairOrder]
    products: List[ProductStock]
    config: PriorityConfigUpdate | None = None

    @field_validator("repairs")
    @classmethod
    def check_unique_ids(cls, value):
        return _unique_ids(value)


class Reservation(CamelModel):
    repair_id: str
    product_id: str
    product_name: str
    quantity: int
    requested_quantity: int
    unit_cost: float
    priority_rank: int
    score: float


class Shortfall(CamelModel):
    repair_id: str
    product_id: str
    missing_quantity: int


class ReorderAlert(CamelModel):
    product_id: str
    product_name: str
    quantity_available: int
    threshold: int
    deficit: int
    shortfall: int = 0
    repair_ids: List[str] = []


class CostLine(CamelModel):
    product_id: str
    product_name: str
    quantity: int
    unit_cost: float
    subtotal: float


class RepairCost(CamelModel):
    repair_id: str
    customer_name: str | None = None
    device_model: str | None = None
    lines: List[CostLine]
    total: float


class CostReport(CamelModel):
    repairs: List[RepairCost]
    grand_total: float


class InventoryResponse(CamelModel):
    reservations: List[Reservation]
    alerts: List[ReorderAlert]
    report: CostReport
    shortfalls: List[Shortfall]


class AlertsRequest(CamelModel):
    products: List[ProductStock]
    threshold: int | None = Field(None, ge=0)


class AlertsResponse(CamelModel):
    alerts: List[ReorderAlert]


class CommunicationMessage(CamelModel):
    id: str
    repair_id: str
    channel: models.Channel
    content: str
    status: models.MessageStatus
    created_at: datetime
    error: str | None = None
    rule_id: str | None = None
    recipient: str | None = None
    subject: str | None = None
    link: str | None = None


class MessageRequest(CamelModel):
    repair: RepairOrder
    channel: models.Channel
    content: str
    recipient: str | None = None
    subject: str | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "repair": {
                    "id": "rep_1",
                    "customerName": "Ana",
                    "createdAt": "2024-01-01T09:00:00Z",
                },
                "channel": "sms",
                "content": "Hola Ana, tu equipo está listo.",
            }
        }


class MessageResponse(CamelModel):
    message: CommunicationMessage


class MessagesResponse(CamelModel):
    messages: List[CommunicationMessage]


class CommunicationTemplate(CamelModel):
    id: str = Field(min_length=1)
    name: str = ""
    channel: models.Channel
    body: str
    subject: str | None = None

    def to_domain(self) -> models.CommunicationTemplate:
        return models.CommunicationTemplate(
            id=self.id,
            name=self.name,
            channel=self.channel,
            body=self.body,
            subject=self.subject,
        )


class ReminderRule(CamelModel):
    id: str = Field(min_length=1)
    stage: str
    inactivity_hours: float = Field(ge=0)
    template_id: str
    enabled: bool = True

    def to_domain(self) -> models.ReminderRule:
        return models.ReminderRule(
            id=self.id,
            stage=self.stage,
            inactivity_hours=self.inactivity_hours,
            template_id=self.template_id,
            enabled=self.enabled,
        )


class ReminderRequest(CamelModel):
    repairs: List[RepairOrder]
    rules: List[ReminderRule] | None = None
    templates: List[CommunicationTemplate] | None = None
    deduplicate: bool | None = None

    @field_validator("repairs")
    @classmethod
    def check_unique_ids(cls, value):
        return _unique_ids(value)

