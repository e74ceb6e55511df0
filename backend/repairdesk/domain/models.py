"""Core domain entities represented as immutable dataclasses.

The engine only ever derives values from these records; callers build them
(usually through :mod:`repairdesk.domain.schemas`) and hand them in. None of
them knows about persistence.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Tuple


class RepairStage(str, Enum):
    """Lifecycle of a repair in the workshop's own vocabulary."""

    RECEIVED = "received"
    DIAGNOSIS = "diagnosis"
    AWAITING_PARTS = "awaiting_parts"
    IN_REPAIR = "in_repair"
    QUALITY_CHECK = "quality_check"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class RepairStatus(str, Enum):
    """Simplified status shown on the kanban board."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    WAITING_PARTS = "waiting_parts"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


class MessageStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class PartRequirement:
    """A part a repair is known to need.

    Example:
        >>> PartRequirement(product_id="prd_1", quantity=1)
    """

    product_id: str
    quantity: int = 1


@dataclass(frozen=True)
class RepairOrder:
    """A ticket for one device repair.

    Example:
        >>> RepairOrder(
        ...     id="rep_1",
        ...     customer_name="Ana",
        ...     device_model="iPhone 13",
        ...     issue_description="Pantalla rota",
        ...     urgency=4,
        ...     technical_complexity=2,
        ...     created_at=datetime.fromisoformat("2024-01-01T09:00:00+00:00"),
        ... )
    """

    id: str
    customer_name: str
    device_model: str
    issue_description: str
    urgency: int
    technical_complexity: int
    created_at: datetime
    historical_value: float | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    stage: str = RepairStage.RECEIVED.value
    diagnosis: str | None = None
    solution: str | None = None
    parts: Tuple[PartRequirement, ...] = ()
    customer_phone: str | None = None
    customer_email: str | None = None

    @property
    def last_activity(self) -> datetime:
        return self.updated_at or self.created_at


@dataclass(frozen=True)
class PriorityRule:
    """Fixed score bonus for repairs mentioning a keyword.

    Example:
        >>> PriorityRule(keyword="garantía", boost=15.0)
    """

    keyword: str
    boost: float


@dataclass(frozen=True)
class PriorityConfig:
    """Weights and normalization caps used by the scoring engine."""

    urgency_weight: float = 0.4
    wait_time_weight: float = 0.3
    historical_value_weight: float = 0.2
    technical_complexity_weight: float = 0.1
    urgency_scale: float = 5.0
    complexity_scale: float = 5.0
    wait_time_scale_hours: float = 72.0
    historical_value_cap: float = 1000.0
    rules: Tuple[PriorityRule, ...] = ()


DEFAULT_PRIORITY_CONFIG = PriorityConfig()


@dataclass(frozen=True)
class ScoredRepair:
    """A repair together with its score and queue position."""

    id: str
    score: float
    rank: int
    repair: RepairOrder


@dataclass(frozen=True)
class ProductStock:
    """Inventory snapshot for one part.

    Example:
        >>> ProductStock(id="prd_1", name="Pantalla iPhone 13", quantity_available=2)
    """

    id: str
    name: str
    quantity_available: int
    reorder_threshold: int | None = None
    sku: str | None = None
    category: str | None = None
    unit_cost: float = 0.0


@dataclass(frozen=True)
class Reservation:
    """Proposed allocation of stock to a repair. Never committed here."""

    repair_id: str
    product_id: str
    product_name: str
    quantity: int
    requested_quantity: int
    unit_cost: float
    priority_rank: int
    score: float


@dataclass(frozen=True)
class Shortfall:
    """Demand that remaining stock could not cover."""

    repair_id: str
    product_id: str
    missing_quantity: int


@dataclass(frozen=True)
class ReorderAlert:
    """A product at or below its restock threshold."""

    product_id: str
    product_name: str
    quantity_available: int
    threshold: int
    deficit: int
    shortfall: int = 0
    repair_ids: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SyncResult:
    reservations: Tuple[Reservation, ...]
    alerts: Tuple[ReorderAlert, ...]
    shortfalls: Tuple[Shortfall, ...]


@dataclass(frozen=True)
class CostLine:
    product_id: str
    product_name: str
    quantity: int
    unit_cost: float
    subtotal: float


@dataclass(frozen=True)
class RepairCost:
    repair_id: str
    customer_name: str | None
    device_model: str | None
    lines: Tuple[CostLine, ...]
    total: float


@dataclass(frozen=True)
class CostReport:
    repairs: Tuple[RepairCost, ...]
    grand_total: float


@dataclass(frozen=True)
class DurationEstimate:
    """Aggregate repair duration for a (device type, issue category) group."""

    key: str
    device_type: str
    issue_category: str
    sample_size: int
    mean_hours: float
    median_hours: float
    p90_hours: float
    min_hours: float
    max_hours: float


@dataclass(frozen=True)
class SymptomCorrelation:
    first: str
    second: str
    co_occurrences: int
    strength: float


@dataclass(frozen=True)
class DiagnosisRecommendation:
    diagnosis: str
    solution: str | None
    confidence: float
    support: int
    repair_ids: Tuple[str, ...]


@dataclass(frozen=True)
class CommunicationTemplate:
    """Message body with ``{{variable}}`` placeholders.

    Example:
        >>> CommunicationTemplate(
        ...     id="tpl_ready",
        ...     name="Listo para retirar",
        ...     channel=Channel.SMS,
        ...     body="Hola {{name}}, tu equipo está listo.",
        ... )
    """

    id: str
    name: str
    channel: Channel
    body: str
    subject: str | None = None


@dataclass(frozen=True)
class ReminderRule:
    """Send ``template_id`` when a repair sits in ``stage`` for too long."""

    id: str
    stage: str
    inactivity_hours: float
    template_id: str
    enabled: bool = True


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    reason: str | None = None


@dataclass(frozen=True)
class CommunicationMessage:
    """Outbound message as recorded in the communication store."""

    id: str
    repair_id: str
    channel: Channel
    content: str
    status: MessageStatus
    created_at: datetime
    error: str | None = None
    rule_id: str | None = None
    recipient: str | None = None
    subject: str | None = None
    link: str | None = field(default=None, compare=False)
