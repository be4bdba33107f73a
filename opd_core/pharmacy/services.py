# opd_core/pharmacy/services.py
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from django.db import IntegrityError, transaction
from django.utils import timezone

from opd_core.audit.services import AuditService
from opd_core.common.errors import DuplicatePrescription, InsufficientStock, ValidationFailed
from opd_core.notifications import topics
from opd_core.notifications.services import notify
from opd_core.pharmacy.allocation import allocate_fifo, available, lock_batches
from opd_core.pharmacy.models import Medicine, MedicineBatch, PrescribedMedicine
from opd_core.pharmacy.selectors import total_stock_by_medicine
from opd_core.visits.models import Visit, VisitStatus
from opd_core.visits.transitions import lock_visit, transition
from opd_core.visits.workflow import assert_status

logger = logging.getLogger(__name__)


def _as_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationFailed(f"{field} must be a positive whole number.", details={field: value})
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field} must be a positive whole number.", details={field: value})
    if n < 1 or (isinstance(value, float) and value != n):
        raise ValidationFailed(f"{field} must be a positive whole number.", details={field: value})
    return n


class InventoryService:
    @staticmethod
    @transaction.atomic
    def add_stock(
        *,
        actor_user_id: int | None,
        name: str,
        quantity: int,
        supplier_info: str = "",
    ) -> MedicineBatch:
        """
        Stock-in: creates the medicine on first sight, then one new batch holding `quantity`.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Medicine name is required.", details={"name": name})
        quantity = _as_positive_int(quantity, field="stock")

        medicine = Medicine.objects.filter(name__iexact=name).first()
        created = False
        if medicine is None:
            try:
                with transaction.atomic():
                    medicine = Medicine.objects.create(name=name)
                    created = True
            except IntegrityError:
                medicine = Medicine.objects.get(name__iexact=name)

        batch = MedicineBatch.objects.create(
            medicine=medicine,
            supplier_info=(supplier_info or "").strip(),
            quantity_received=quantity,
            quantity_remaining=quantity,
            received_at=timezone.now(),
            added_by_id=actor_user_id,
        )

        AuditService.log(
            event_code="inventory.stock_added",
            entity_type="Medicine",
            entity_id=medicine.id,
            actor_user_id=actor_user_id,
            metadata={"batch_id": batch.id, "quantity": quantity, "medicine_created": created},
        )
        # Pharmacy rows carry stock warnings, so they change too.
        notify(topics.INVENTORY, topics.PHARMACY_QUEUE)
        logger.info("Added %s units of %s (batch %s)", quantity, medicine.name, batch.id)
        return batch


class PrescriptionService:
    @staticmethod
    @transaction.atomic
    def add_lines(
        *,
        visit: Visit,
        lines: Iterable[Mapping[str, Any]],
        actor_user_id: int | None,
    ) -> list[PrescribedMedicine]:
        """
        Attach medicine lines to a (locked) visit.

        Rejects the whole batch on: unknown medicine, non-positive quantity,
        the same medicine twice (in the request or already on the visit),
        or a quantity above the current total stock.
        """
        parsed: list[tuple[int, int]] = []
        seen: set[int] = set()
        for line in lines or []:
            try:
                medicine_id = int(line["id"])
            except (KeyError, TypeError, ValueError):
                raise ValidationFailed("Each prescribed medicine needs a valid id.", details={"line": dict(line)})
            quantity = _as_positive_int(line.get("quantity"), field="quantity")
            if medicine_id in seen:
                raise DuplicatePrescription(details={"medicine_id": medicine_id})
            seen.add(medicine_id)
            parsed.append((medicine_id, quantity))

        if not parsed:
            return []

        medicines = Medicine.objects.in_bulk([mid for mid, _ in parsed])
        missing = [mid for mid, _ in parsed if mid not in medicines]
        if missing:
            raise ValidationFailed("Unknown medicine id(s).", details={"medicine_ids": missing})

        already = list(
            PrescribedMedicine.objects.filter(visit=visit, medicine_id__in=list(medicines))
            .values_list("medicine_id", flat=True)
        )
        if already:
            names = ", ".join(sorted(medicines[mid].name for mid in already))
            raise DuplicatePrescription(
                f"Already prescribed for this visit: {names}.",
                details={"medicine_ids": sorted(already)},
            )

        stock = total_stock_by_medicine(medicines.keys())
        short = [
            {
                "medicine_id": mid,
                "medicine": medicines[mid].name,
                "requested": qty,
                "available": stock.get(mid, 0),
            }
            for mid, qty in parsed
            if qty > stock.get(mid, 0)
        ]
        if short:
            raise InsufficientStock(
                "Insufficient stock for: " + ", ".join(s["medicine"] for s in short) + ".",
                details={"shortages": short},
            )

        now = timezone.now()
        created = [
            PrescribedMedicine.objects.create(visit=visit, medicine_id=mid, quantity=qty, prescribed_at=now)
            for mid, qty in parsed
        ]

        AuditService.log(
            event_code="visit.medicines_prescribed",
            entity_type="Visit",
            entity_id=visit.id,
            actor_user_id=actor_user_id,
            metadata={"lines": [{"medicine_id": mid, "quantity": qty} for mid, qty in parsed]},
        )
        return created


class DispenseService:
    @staticmethod
    @transaction.atomic
    def issue_medicines(*, visit_id, actor_user_id: int | None) -> Visit:
        """
        Dispense every pending line of a visit, all or nothing.

        Locks the visit, the pending lines and the involved batches; if any line
        exceeds its medicine's total stock nothing is written and every short
        line is reported.
        """
        visit = lock_visit(visit_id)
        assert_status(visit.status, {VisitStatus.PHARMACY_PENDING}, action="issue_medicines")

        lines = list(
            PrescribedMedicine.objects.select_for_update()
            .filter(visit_id=visit.id, dispensed=False)
            .order_by("id")
        )
        medicine_ids = [line.medicine_id for line in lines]
        names = {m.id: m.name for m in Medicine.objects.filter(id__in=medicine_ids)}
        batches = lock_batches(medicine_ids)

        shortages = [
            {
                "line_id": line.id,
                "medicine_id": line.medicine_id,
                "medicine": names.get(line.medicine_id, ""),
                "requested": line.quantity,
                "available": available(batches.get(line.medicine_id, [])),
            }
            for line in lines
            if line.quantity > available(batches.get(line.medicine_id, []))
        ]
        if shortages:
            raise InsufficientStock(
                "Insufficient stock for: " + ", ".join(s["medicine"] for s in shortages) + ".",
                details={"shortages": shortages},
            )

        now = timezone.now()
        issued: list[dict] = []
        for line in lines:
            for batch, used in allocate_fifo(batches.get(line.medicine_id, []), line.quantity):
                batch.quantity_remaining -= used
                batch.save(update_fields=["quantity_remaining"])
                issued.append({"line_id": line.id, "batch_id": batch.id, "quantity": used})

            line.dispensed = True
            line.dispensed_by_id = actor_user_id
            line.dispensed_at = now
            line.save(update_fields=["dispensed", "dispensed_by", "dispensed_at"])

        return transition(
            visit,
            to_status=VisitStatus.COMPLETED,
            action="medicines_dispensed",
            actor_user_id=actor_user_id,
            title="Medicines dispensed",
            changes={"dispensed_at": now},
            meta={"allocations": issued},
            extra_topics=(topics.INVENTORY, topics.REPORTS),
        )
