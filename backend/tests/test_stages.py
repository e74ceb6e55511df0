"""Tests for the stage/status lookup tables."""

import pytest

from repairdesk.domain.models import RepairStage, RepairStatus
from repairdesk.services.stages import (
    is_finished,
    is_terminal,
    parts_settled,
    stage_to_status,
    status_to_stage,
)


@pytest.mark.parametrize(
    "stage, status",
    [
        ("received", "pending"),
        ("diagnosis", "in_progress"),
        ("awaiting_parts", "waiting_parts"),
        ("in_repair", "in_progress"),
        ("quality_check", "in_progress"),
        ("ready", "completed"),
        ("delivered", "completed"),
        ("cancelled", "cancelled"),
        ("lost_in_transit", "pending"),
        ("", "pending"),
    ],
)
def test_stage_to_status_table(stage, status):
    assert stage_to_status(stage) is RepairStatus(status)


@pytest.mark.parametrize(
    "status, stage",
    [
        ("pending", "received"),
        ("in_progress", "in_repair"),
        ("waiting_parts", "awaiting_parts"),
        ("on_hold", "diagnosis"),
        ("completed", "ready"),
        ("cancelled", "cancelled"),
        ("archived", "received"),
    ],
)
def test_status_to_stage_table(status, stage):
    assert status_to_stage(status) is RepairStage(stage)


def test_mapping_is_not_a_round_trip():
    assert status_to_stage(stage_to_status("delivered")) is RepairStage.READY
    assert status_to_stage(stage_to_status("diagnosis")) is RepairStage.IN_REPAIR


def test_enum_members_are_accepted():
    assert stage_to_status(RepairStage.AWAITING_PARTS) is RepairStatus.WAITING_PARTS


def test_terminal_stages():
    assert is_terminal("delivered")
    assert is_terminal("cancelled")
    assert not is_terminal("ready")
    assert not is_terminal("unknown")


def test_finished_stages_include_ready():
    assert is_finished("ready")
    assert is_finished("delivered")
    assert not is_finished("cancelled")
    assert not is_finished("awaiting_parts")


@pytest.mark.parametrize("stage", ["ready", "delivered", "cancelled"])
def test_parts_settled(stage):
    assert parts_settled(stage)


@pytest.mark.parametrize("stage", ["received", "diagnosis", "awaiting_parts", "in_repair", "quality_check", "x"])
def test_parts_still_needed(stage):
    assert not parts_settled(stage)
