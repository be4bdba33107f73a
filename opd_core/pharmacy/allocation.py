# opd_core/pharmacy/allocation.py
from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from opd_core.common.errors import InsufficientStock
from opd_core.pharmacy.models import MedicineBatch


def lock_batches(medicine_ids: Iterable[int]) -> dict[int, list[MedicineBatch]]:
    """
    Row-lock every batch with stock left for the given medicines.
    Returns batches per medicine, oldest received first (id breaks ties).
    """
    out: dict[int, list[MedicineBatch]] = {}
    qs = (
        MedicineBatch.objects.select_for_update()
        .filter(medicine_id__in=list(medicine_ids), quantity_remaining__gt=0)
        .order_by("received_at", "id")
    )
    for batch in qs:
        out.setdefault(batch.medicine_id, []).append(batch)
    return out


def available(batches: Sequence[MedicineBatch]) -> int:
    return sum(b.quantity_remaining for b in batches)


def allocate_fifo(batches: Sequence[MedicineBatch], quantity: int) -> List[Tuple[MedicineBatch, int]]:
    """
    FIFO allocation (oldest received batch first).

    - `batches` must already be ordered and locked
    - Returns list of (batch, qty_to_use); nothing is mutated
    - Raises InsufficientStock if the batches cannot cover `quantity`
    """
    if quantity is None or int(quantity) <= 0:
        raise ValueError("Quantity must be > 0")

    remaining = int(quantity)
    allocations: List[Tuple[MedicineBatch, int]] = []

    for batch in batches:
        if remaining <= 0:
            break
        if batch.quantity_remaining <= 0:
            continue

        use_qty = min(batch.quantity_remaining, remaining)
        allocations.append((batch, use_qty))
        remaining -= use_qty

    if remaining > 0:
        raise InsufficientStock(
            f"Insufficient stock: requested {quantity}, available {int(quantity) - remaining}.",
            details={"requested": int(quantity), "available": int(quantity) - remaining},
        )
    return allocations
