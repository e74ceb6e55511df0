"""Priority queue state owned by one application instance."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

from ..domain.models import (
    DEFAULT_PRIORITY_CONFIG,
    PriorityConfig,
    RepairOrder,
    ScoredRepair,
)
from .priority import rank_repairs


class PriorityQueueState:
    """Last configuration and repair snapshot posted to the queue.

    Each app gets its own instance (see ``create_app``), so separate apps
    and test clients never see each other's queue.
    """

    def __init__(self, config: PriorityConfig = DEFAULT_PRIORITY_CONFIG) -> None:
        self._config = config
        self._repairs: Tuple[RepairOrder, ...] = ()
        self._lock = threading.Lock()

    @property
    def config(self) -> PriorityConfig:
        with self._lock:
            return self._config

    def update(
        self,
        config_changes: Dict[str, Any] | None = None,
        repairs: Sequence[RepairOrder] | None = None,
    ) -> None:
        """Merge config overrides and/or replace the repair snapshot."""
        with self._lock:
            if config_changes:
                self._config = replace(self._config, **config_changes)
            if repairs is not None:
                self._repairs = tuple(repairs)

    def queue(self, now: datetime | None = None) -> Tuple[PriorityConfig, List[ScoredRepair]]:
        with self._lock:
            config, repairs = self._config, self._repairs
        return config, rank_repairs(repairs, config, now)
