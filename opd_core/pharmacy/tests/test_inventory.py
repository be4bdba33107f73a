# opd_core/pharmacy/tests/test_inventory.py
import pytest

from opd_core.notifications.selectors import topic_versions
from opd_core.pharmacy.models import MedicineBatch
from opd_core.pharmacy.selectors import total_stock

pytestmark = pytest.mark.django_db


def test_add_medicine_creates_one_batch_and_raises_total_by_amount(api_client_for, office_user, stock):
    med = stock("Paracetamol", 15)
    before = total_stock(med.id)

    res = api_client_for(office_user).post(
        "/api/office/add-medicine",
        {"name": "Paracetamol", "stock": 20, "supplier_info": "MedSupply Co"},
        format="json",
    )
    assert res.status_code == 201

    body = res.json()
    assert body["batch"]["quantity_remaining"] == 20
    assert body["medicine"]["totalStock"] == before + 20
    assert total_stock(med.id) == before + 20
    assert MedicineBatch.objects.filter(medicine=med).count() == 2


def test_medicine_names_match_case_insensitively(stock):
    first = stock("Paracetamol", 5)
    second = stock("paracetamol", 5)
    assert first.id == second.id


def test_stock_must_be_positive(api_client_for, office_user):
    res = api_client_for(office_user).post(
        "/api/office/add-medicine", {"name": "Paracetamol", "stock": 0}, format="json"
    )
    assert res.status_code == 400


def test_add_stock_bumps_inventory_and_pharmacy_topics(stock):
    stock("Ibuprofen", 10)
    v = topic_versions()
    assert v["inventoryUpdate"] == 1
    assert v["pharmacyQueueUpdate"] == 1


def test_medicine_list_shows_total_and_batches(api_client_for, pharmacy_user, stock):
    stock("Paracetamol", 5, 7)
    res = api_client_for(pharmacy_user).get("/api/office/medicines")
    assert res.status_code == 200

    (row,) = res.json()
    assert row["name"] == "Paracetamol"
    assert row["totalStock"] == 12
    assert [b["quantity_remaining"] for b in row["batches"]] == [5, 7]
