# opd_core/lab/tests/test_catalogue.py
import pytest

from opd_core.notifications.selectors import topic_versions

pytestmark = pytest.mark.django_db


def test_office_adds_lab_test(api_client_for, office_user):
    res = api_client_for(office_user).post(
        "/api/office/add-lab-test", {"name": "Lipid Profile", "description": "Fasting"}, format="json"
    )
    assert res.status_code == 201
    assert res.json()["labTest"]["name"] == "Lipid Profile"
    assert topic_versions()["labTestListUpdate"] == 1


def test_duplicate_lab_test_is_409(api_client_for, office_user, lab_test):
    res = api_client_for(office_user).post(
        "/api/office/add-lab-test", {"name": lab_test.name.upper()}, format="json"
    )
    assert res.status_code == 409


def test_lab_test_list_is_sorted(api_client_for, doctor_user, lab_test):
    from opd_core.lab.models import LabTest

    LabTest.objects.create(name="Blood Sugar")
    res = api_client_for(doctor_user).get("/api/office/lab-tests")
    assert [t["name"] for t in res.json()] == ["Blood Sugar", "Complete Blood Count"]


def test_list_and_add_routes_each_take_one_method(api_client_for, office_user, lab_test):
    c = api_client_for(office_user)
    assert c.get("/api/office/add-lab-test").status_code == 405
    assert c.post("/api/office/lab-tests", {"name": "ESR"}, format="json").status_code == 405
    assert c.get("/api/office/lab-tests").status_code == 200
