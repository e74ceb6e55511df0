"""Shared fixtures for the engine and API tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))
from repairdesk.domain.models import ProductStock, RepairOrder  # noqa: E402
from repairdesk.main import create_app  # noqa: E402

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def hours_ago(hours: float) -> datetime:
    return NOW - timedelta(hours=hours)


def make_repair(repair_id: str = "rep_1", **overrides) -> RepairOrder:
    fields = {
        "id": repair_id,
        "customer_name": "Ana",
        "device_model": "iPhone 13",
        "issue_description": "Pantalla rota",
        "urgency": 3,
        "technical_complexity": 2,
        "created_at": hours_ago(24),
    }
    fields.update(overrides)
    return RepairOrder(**fields)


def make_product(product_id: str = "prd_1", **overrides) -> ProductStock:
    fields = {
        "id": product_id,
        "name": "Pantalla iPhone 13",
        "quantity_available": 5,
        "unit_cost": 60.0,
    }
    fields.update(overrides)
    return ProductStock(**fields)


@pytest.fixture
def client() -> TestClient:
    """Client bound to a fresh app so queue and message state start empty."""
    return TestClient(create_app())
