"""Stock reservation against the prioritized repair queue.

Repairs are served greedily in priority order from a working copy of the
stock levels. The policy is partial reservation: a repair takes whatever is
left of the part it needs and the remainder is reported as a shortfall, so a
late high-value repair is never skipped outright. Projected quantities may
drop below zero; that only signals missing stock and is never written back.
"""

from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from ..domain.models import (
    DEFAULT_PRIORITY_CONFIG,
    CostLine,
    CostReport,
    PriorityConfig,
    ProductStock,
    RepairCost,
    RepairOrder,
    ReorderAlert,
    Reservation,
    Shortfall,
    SyncResult,
)
from .priority import rank_repairs
from .stages import parts_settled
from .text import classify_tokens, tokenize

logger = logging.getLogger(__name__)

DEFAULT_REORDER_THRESHOLD = 3

_MODEL_WORD_RE = re.compile(r"\w+", re.UNICODE)


def infer_component_type(text: str | None) -> str | None:
    """Guess which component a description or product name refers to."""
    return classify_tokens(tokenize(text))


def _model_words(text: str | None) -> set:
    # Unlike keyword tokens, model numbers ("13", "s21") matter here.
    return set(_MODEL_WORD_RE.findall((text or "").lower()))


def infer_parts(
    repair: RepairOrder, products: Sequence[ProductStock]
) -> List[Tuple[str, int]]:
    """Return ``(product_id, quantity)`` pairs the repair is expected to use.

    Explicit parts on the repair win. Otherwise one unit of the best matching
    product for the inferred component: most words shared with the device
    model, then most stock, then lowest id. When the repair names a device,
    products sharing no word with it are never picked.
    """
    if repair.parts:
        return [(part.product_id, part.quantity) for part in repair.parts if part.quantity > 0]

    component = infer_component_type(repair.issue_description)
    if component is None:
        return []

    model = _model_words(repair.device_model)
    candidates = []
    for product in products:
        if infer_component_type(f"{product.name} {product.category or ''}") != component:
            continue
        overlap = len(model & _model_words(product.name))
        if model and not overlap:
            continue
        candidates.append((-overlap, -product.quantity_available, product.id))

    if not candidates:
        return []
    return [(min(candidates)[2], 1)]


def _threshold_for(product: ProductStock, default_threshold: int) -> int:
    if product.reorder_threshold is not None:
        return product.reorder_threshold
    return default_threshold


def suggest_reservations(
    repairs: Sequence[RepairOrder],
    products: Sequence[ProductStock],
    config: PriorityConfig = DEFAULT_PRIORITY_CONFIG,
    default_threshold: int = DEFAULT_REORDER_THRESHOLD,
    now: datetime | None = None,
) -> SyncResult:
    """Propose reservations for open repairs and flag products to reorder."""
    catalog: Dict[str, ProductStock] = {p.id: p for p in products}
    projected: Dict[str, int] = {p.id: p.quantity_available for p in products}
    crossed: List[str] = []
    drawn_by: Dict[str, List[str]] = defaultdict(list)
    missing: Counter = Counter()
    reservations: List[Reservation] = []
    shortfalls: List[Shortfall] = []

    queue = rank_repairs([r for r in repairs if not parts_settled(r.stage)], config, now)
    for scored in queue:
        repair = scored.repair
        for product_id, requested in infer_parts(repair, products):
            product = catalog.get(product_id)
            if product is None:
                shortfalls.append(Shortfall(repair.id, product_id, requested))
                continue

            granted = min(requested, max(0, projected[product_id]))
            projected[product_id] -= requested
            if repair.id not in drawn_by[product_id]:
                drawn_by[product_id].append(repair.id)

            if granted:
                reservations.append(
                    Reservation(
                        repair_id=repair.id,
                        product_id=product_id,
                        product_name=product.name,
                        quantity=granted,
                        requested_quantity=requested,
                        unit_cost=product.unit_cost,
                        priority_rank=scored.rank,
                        score=scored.score,
                    )
                )
            if granted < requested:
                shortfalls.append(Shortfall(repair.id, product_id, requested - granted))
                missing[product_id] += requested - granted

            threshold = _threshold_for(product, default_threshold)
            if product_id not in crossed and projected[product_id] <= threshold:
                crossed.append(product_id)

    alerts = []
    for product_id in crossed:
        product = catalog[product_id]
        threshold = _threshold_for(product, default_threshold)
        remaining = projected[product_id]
        alerts.append(
            ReorderAlert(
                product_id=product_id,
                product_name=product.name,
                quantity_available=remaining,
                threshold=threshold,
                deficit=max(0, threshold - remaining),
                shortfall=missing[product_id],
                repair_ids=tuple(drawn_by[product_id]),
            )
        )

    logger.info(
        "Reservation pass: %d repairs, %d reservations, %d shortfalls, %d alerts",
        len(queue),
        len(reservations),
        len(shortfalls),
        len(alerts),
    )
    return SyncResult(
        reservations=tuple(reservations),
        alerts=tuple(alerts),
        shortfalls=tuple(shortfalls),
    )


def generate_reorder_alerts(
    products: Sequence[ProductStock],
    threshold: int | None = None,
    default_threshold: int = DEFAULT_REORDER_THRESHOLD,
) -> List[ReorderAlert]:
    """Flag products at or below their threshold.

    ``threshold`` overrides every product; otherwise each product's own
    threshold applies, falling back to ``default_threshold``.
    """
    alerts = []
    for product in products:
        limit = threshold if threshold is not None else _threshold_for(product, default_threshold)
        if product.quantity_available <= limit:
            alerts.append(
                ReorderAlert(
                    product_id=product.id,
                    product_name=product.name,
                    quantity_available=product.quantity_available,
                    threshold=limit,
                    deficit=limit - product.quantity_available,
                )
            )
    return alerts


def cost_report(
    reservations: Sequence[Reservation],
    products: Sequence[ProductStock],
    repairs: Sequence[RepairOrder],
) -> CostReport:
    """Materials cost per repair plus a grand total, in reservation order."""
    catalog = {p.id: p for p in products}
    repair_index = {r.id: r for r in repairs}
    lines_by_repair: Dict[str, List[CostLine]] = {}

    for reservation in reservations:
        product = catalog.get(reservation.product_id)
        unit_cost = product.unit_cost if product is not None else reservation.unit_cost
        lines_by_repair.setdefault(reservation.repair_id, []).append(
            CostLine(
                product_id=reservation.product_id,
                product_name=product.name if product is not None else reservation.product_name,
                quantity=reservation.quantity,
                unit_cost=unit_cost,
                subtotal=round(unit_cost * reservation.quantity, 2),
            )
        )

    entries = []
    for repair_id, lines in lines_by_repair.items():
        repair = repair_index.get(repair_id)
        entries.append(
            RepairCost(
                repair_id=repair_id,
                customer_name=repair.customer_name if repair else None,
                device_model=repair.device_model if repair else None,
                lines=tuple(lines),
                total=round(sum(line.subtotal for line in lines), 2),
            )
        )
    return CostReport(
        repairs=tuple(entries),
        grand_total=round(sum(entry.total for entry in entries), 2),
    )
