"""Translation between repair stages and kanban statuses.

The two tables are informational and deliberately lossy: ``ready`` and
``delivered`` both show as ``completed``, which maps back to ``ready``.
Nothing maps onto ``on_hold``; dropping a card there parks the repair in
``diagnosis``.
"""

from typing import Dict

from ..domain.models import RepairStage, RepairStatus

STAGE_TO_STATUS: Dict[RepairStage, RepairStatus] = {
    RepairStage.RECEIVED: RepairStatus.PENDING,
    RepairStage.DIAGNOSIS: RepairStatus.IN_PROGRESS,
    RepairStage.AWAITING_PARTS: RepairStatus.WAITING_PARTS,
    RepairStage.IN_REPAIR: RepairStatus.IN_PROGRESS,
    RepairStage.QUALITY_CHECK: RepairStatus.IN_PROGRESS,
    RepairStage.READY: RepairStatus.COMPLETED,
    RepairStage.DELIVERED: RepairStatus.COMPLETED,
    RepairStage.CANCELLED: RepairStatus.CANCELLED,
}

STATUS_TO_STAGE: Dict[RepairStatus, RepairStage] = {
    RepairStatus.PENDING: RepairStage.RECEIVED,
    RepairStatus.IN_PROGRESS: RepairStage.IN_REPAIR,
    RepairStatus.WAITING_PARTS: RepairStage.AWAITING_PARTS,
    RepairStatus.ON_HOLD: RepairStage.DIAGNOSIS,
    RepairStatus.COMPLETED: RepairStage.READY,
    RepairStatus.CANCELLED: RepairStage.CANCELLED,
}

TERMINAL_STAGES = frozenset({RepairStage.DELIVERED, RepairStage.CANCELLED})
# The device has been repaired, whether or not it was picked up.
FINISHED_STAGES = frozenset({RepairStage.READY, RepairStage.DELIVERED})
# Stages that no longer draw on stock.
PARTS_SETTLED_STAGES = FINISHED_STAGES | TERMINAL_STAGES


def _coerce(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def stage_to_status(stage: str) -> RepairStatus:
    """Kanban column for ``stage``; unknown stages land in ``pending``."""
    known = _coerce(RepairStage, stage)
    if known is None:
        return RepairStatus.PENDING
    return STAGE_TO_STATUS[known]


def status_to_stage(status: str) -> RepairStage:
    """Stage to store when a card is dropped on ``status``."""
    known = _coerce(RepairStatus, status)
    if known is None:
        return RepairStage.RECEIVED
    return STATUS_TO_STAGE[known]


def is_terminal(stage: str) -> bool:
    return _coerce(RepairStage, stage) in TERMINAL_STAGES


def is_finished(stage: str) -> bool:
    return _coerce(RepairStage, stage) in FINISHED_STAGES


def parts_settled(stage: str) -> bool:
    """True once a repair no longer needs parts reserved for it."""
    return _coerce(RepairStage, stage) in PARTS_SETTLED_STAGES
