# opd_core/patients/tests/test_registration.py
import pytest
from django.core.exceptions import ValidationError

from opd_core.conftest import family_member_payload, patient_payload
from opd_core.notifications.selectors import topic_versions
from opd_core.patients.models import Patient, PendingRegistration
from opd_core.visits.models import Visit, VisitStatus

pytestmark = pytest.mark.django_db


def test_op_register_assigns_op_numbers_to_patient_and_family(api_client_for, op_user):
    member = family_member_payload()
    body = patient_payload(family_details=[member])

    res = api_client_for(op_user).post("/api/op/register", body, format="json")
    assert res.status_code == 201, res.json()

    data = res.json()
    assert data["patient"]["op_number"] == "OP000001"
    assert data["visit_id"] is None
    assert len(data["family"]) == 1

    fam = data["family"][0]
    assert fam["op_number"] == "OP000002"
    assert fam["patient_type"] == "Family Member"
    assert fam["designation"] == "Spouse of Ravi Kumar"
    assert fam["primary_op_number"] == "OP000001"
    assert fam["address"] == body["address"]


def test_op_register_with_reason_opens_visit_in_doctor_queue(api_client_for, op_user):
    res = api_client_for(op_user).post(
        "/api/op/register", patient_payload(reason_for_visit="Headache"), format="json"
    )
    assert res.status_code == 201

    visit = Visit.objects.get(id=res.json()["visit_id"])
    assert visit.status == VisitStatus.PATIENT_REGISTERED
    assert topic_versions()["doctorQueueUpdate"] == 1


def test_duplicate_aadhar_is_409(api_client_for, op_user, patient):
    res = api_client_for(op_user).post("/api/op/register", patient_payload(aadhar=patient.aadhar), format="json")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "already_registered"
    assert Patient.objects.count() == 1


def test_same_aadhar_twice_in_one_submission_is_rejected(api_client_for, op_user):
    body = patient_payload()
    body["family_details"] = [family_member_payload(aadhar=body["aadhar"])]

    res = api_client_for(op_user).post("/api/op/register", body, format="json")
    assert res.status_code == 409
    assert Patient.objects.count() == 0


def test_university_member_needs_designation(api_client_for, op_user):
    res = api_client_for(op_user).post("/api/op/register", patient_payload(designation=""), format="json")
    assert res.status_code == 400
    assert "designation" in res.json()["error"]["details"]


def test_dependant_style_designation_is_not_an_employee_designation(api_client_for, op_user):
    res = api_client_for(op_user).post(
        "/api/op/register", patient_payload(designation="Spouse of Ravi Kumar"), format="json"
    )
    assert res.status_code == 400
    assert "designation" in res.json()["error"]["details"]


def test_designation_field_accepts_stored_forms_only(api_client_for, op_user):
    body = patient_payload()
    body["family_details"] = [family_member_payload(relation="Son")]
    assert api_client_for(op_user).post("/api/op/register", body, format="json").status_code == 201

    field = Patient._meta.get_field("designation")
    for p in Patient.objects.all():
        field.run_validators(p.designation)

    with pytest.raises(ValidationError):
        field.run_validators("Chief - Everything")
    with pytest.raises(ValidationError):
        field.run_validators("Cousin of Ravi Kumar")


def test_non_university_member_cannot_add_family(api_client_for, op_user):
    body = patient_payload(patient_type="Non-University Member", designation="")
    body["family_details"] = [family_member_payload()]

    res = api_client_for(op_user).post("/api/op/register", body, format="json")
    assert res.status_code == 400


def test_bad_phone_is_400(api_client_for, op_user):
    res = api_client_for(op_user).post("/api/op/register", patient_payload(phone="12345"), format="json")
    assert res.status_code == 400
    assert res.json()["msg"].startswith("phone:")


def test_patient_details_returns_primary_family_and_visits(api_client_for, op_user, visit):
    patient = visit.patient
    res = api_client_for(op_user).get(f"/api/op/patient-details/{patient.op_number.lower()}")
    assert res.status_code == 200

    body = res.json()
    assert body["primary"]["op_number"] == patient.op_number
    assert body["family"] == []
    assert [v["id"] for v in body["visits"]] == [visit.id]


def test_unknown_op_number_is_404(api_client_for, op_user):
    res = api_client_for(op_user).get("/api/op/patient-details/OP999999")
    assert res.status_code == 404
