# opd_core/pharmacy/tests/test_dispense.py
import pytest
from django.core.exceptions import ValidationError

from opd_core.notifications.selectors import topic_versions
from opd_core.pharmacy.models import MedicineBatch, PrescribedMedicine
from opd_core.pharmacy.selectors import total_stock
from opd_core.queues.projections import pharmacy_queue
from opd_core.visits.models import VisitStatus

pytestmark = pytest.mark.django_db


@pytest.fixture
def prescribe(api_client_for, doctor_user, visit):
    def _prescribe(*lines):
        res = api_client_for(doctor_user).post(
            f"/api/doctor/complete-consultation/{visit.id}",
            {"diagnosis": "Fever", "prescribedMedicines": [{"id": m.id, "quantity": q} for m, q in lines]},
            format="json",
        )
        assert res.status_code == 200, res.json()
        return visit

    return _prescribe


def _drain(medicine, amount):
    """Simulate stock used up elsewhere after prescribing."""
    for batch in MedicineBatch.objects.filter(medicine=medicine).order_by("received_at", "id"):
        take = min(batch.quantity_remaining, amount)
        batch.quantity_remaining -= take
        batch.save(update_fields=["quantity_remaining"])
        amount -= take


def test_issue_medicines_dispenses_all_lines_and_completes(api_client_for, pharmacy_user, prescribe, stock):
    a = stock("Paracetamol", 4, 10)
    b = stock("Cetirizine", 5)
    visit = prescribe((a, 6), (b, 5))

    res = api_client_for(pharmacy_user).post(f"/api/pharmacy/issue-medicines/{visit.id}")
    assert res.status_code == 200
    assert res.json()["visit"]["status"] == VisitStatus.COMPLETED

    assert total_stock(a.id) == 8
    assert total_stock(b.id) == 0
    assert list(
        MedicineBatch.objects.filter(medicine=a).order_by("received_at", "id").values_list("quantity_remaining", flat=True)
    ) == [0, 8]
    assert not PrescribedMedicine.objects.filter(visit=visit, dispensed=False).exists()
    assert pharmacy_queue() == []
    assert topic_versions()["reportsUpdate"] >= 1


def test_short_stock_rejects_whole_dispense(api_client_for, pharmacy_user, prescribe, stock):
    a = stock("Paracetamol", 5)
    b = stock("Cetirizine", 3)
    visit = prescribe((a, 5), (b, 3))
    _drain(b, 1)  # stock is now [5, 2] against requests [5, 3]

    (row,) = pharmacy_queue()
    assert row["can_dispense"] is False
    assert [m["insufficient_stock"] for m in row["medicines"]] == [False, True]

    res = api_client_for(pharmacy_user).post(f"/api/pharmacy/issue-medicines/{visit.id}")
    assert res.status_code == 409
    err = res.json()["error"]
    assert err["code"] == "insufficient_stock"
    assert [(s["medicine"], s["requested"], s["available"]) for s in err["details"]["shortages"]] == [
        ("Cetirizine", 3, 2)
    ]

    # nothing moved
    assert total_stock(a.id) == 5
    assert total_stock(b.id) == 2
    assert PrescribedMedicine.objects.filter(visit=visit, dispensed=False).count() == 2
    visit.refresh_from_db()
    assert visit.status == VisitStatus.PHARMACY_PENDING


def test_issue_twice_is_409(api_client_for, pharmacy_user, prescribe, stock):
    a = stock("Paracetamol", 10)
    visit = prescribe((a, 2))
    c = api_client_for(pharmacy_user)

    assert c.post(f"/api/pharmacy/issue-medicines/{visit.id}").status_code == 200
    again = c.post(f"/api/pharmacy/issue-medicines/{visit.id}")
    assert again.status_code == 409
    assert total_stock(a.id) == 8


def test_dispensed_lines_are_immutable(api_client_for, pharmacy_user, prescribe, stock):
    a = stock("Paracetamol", 10)
    visit = prescribe((a, 2))
    api_client_for(pharmacy_user).post(f"/api/pharmacy/issue-medicines/{visit.id}")

    line = PrescribedMedicine.objects.get(visit=visit)
    assert line.dispensed_by_id == pharmacy_user.id
    line.quantity = 1
    with pytest.raises(ValidationError):
        line.save()
    with pytest.raises(ValidationError):
        line.delete()


def test_pharmacy_queue_rows(api_client_for, pharmacy_user, prescribe, stock):
    a = stock("Paracetamol", 10)
    visit = prescribe((a, 2))

    res = api_client_for(pharmacy_user).get("/api/pharmacy/queue")
    assert res.status_code == 200
    (row,) = res.json()
    assert row["id"] == visit.id
    assert row["doctor"] == "doctor"
    assert row["can_dispense"] is True
    assert row["medicines"] == [
        {
            "id": row["medicines"][0]["id"],
            "medicine_id": a.id,
            "name": "Paracetamol",
            "quantity": 2,
            "total_stock": 10,
            "insufficient_stock": False,
        }
    ]
