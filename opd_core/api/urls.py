# opd_core/api/urls.py
from __future__ import annotations

from django.urls import path

from opd_core.iam.api.auth import ForgotPasswordView, LoginView, ResetPasswordView
from opd_core.iam.api.staff import StaffDetailView, StaffListCreateView
from opd_core.lab.api.views import AddLabTestView, LabQueueView, LabTestListView, UploadReportView
from opd_core.notifications.api.views import TopicVersionsView
from opd_core.office.api.views import DailyLabTestsView, DailyMedicinesView, DailyVisitsView
from opd_core.patients.api.views import (
    ApprovePatientView,
    OpRegisterView,
    PatientDetailsView,
    PendingApprovalsView,
    PendingPatientView,
    PublicRegisterView,
)
from opd_core.pharmacy.api.views import AddMedicineView, IssueMedicinesView, MedicineListView, PharmacyQueueView
from opd_core.visits.api.views import (
    AddMedicinesView,
    CompleteConsultationView,
    CreateVisitView,
    DoctorQueueView,
    PatientHistoryView,
    UpdateDiagnosisView,
    VisitTimelineView,
)


def route(pattern: str, view, name: str):
    """The dashboards call routes without a trailing slash; scripts often add one."""
    return [path(pattern, view, name=name), path(f"{pattern}/", view)]


urlpatterns = [
    # Auth
    *route("auth/login", LoginView.as_view(), "login"),
    *route("auth/forgot-password", ForgotPasswordView.as_view(), "forgot-password"),
    *route("auth/reset-password/<str:token>", ResetPasswordView.as_view(), "reset-password"),

    # Public self-registration
    *route("public/register", PublicRegisterView.as_view(), "public-register"),

    # Master
    *route("master/staff", StaffListCreateView.as_view(), "staff-list"),
    *route("master/staff/<int:user_id>", StaffDetailView.as_view(), "staff-detail"),

    # OP desk
    *route("op/register", OpRegisterView.as_view(), "op-register"),
    *route("op/patient-details/<str:op_number>", PatientDetailsView.as_view(), "op-patient-details"),
    *route("op/create-visit", CreateVisitView.as_view(), "op-create-visit"),
    *route("op/pending-approvals", PendingApprovalsView.as_view(), "op-pending-approvals"),
    *route("op/pending-patient/<str:aadhar>", PendingPatientView.as_view(), "op-pending-patient"),
    *route("op/approve-patient/<str:aadhar>", ApprovePatientView.as_view(), "op-approve-patient"),

    # Doctor
    *route("doctor/registered-ops", DoctorQueueView.as_view(), "doctor-queue"),
    *route("doctor/patient-history/<int:patient_id>", PatientHistoryView.as_view(), "doctor-patient-history"),
    *route(
        "doctor/complete-consultation/<int:visit_id>",
        CompleteConsultationView.as_view(),
        "doctor-complete-consultation",
    ),
    *route("doctor/update-diagnosis/<int:visit_id>", UpdateDiagnosisView.as_view(), "doctor-update-diagnosis"),
    *route("doctor/add-medicines/<int:visit_id>", AddMedicinesView.as_view(), "doctor-add-medicines"),

    # Pharmacy
    *route("pharmacy/queue", PharmacyQueueView.as_view(), "pharmacy-queue"),
    *route("pharmacy/issue-medicines/<int:visit_id>", IssueMedicinesView.as_view(), "pharmacy-issue-medicines"),

    # Lab
    *route("lab/queue", LabQueueView.as_view(), "lab-queue"),
    *route("lab/upload-report/<int:ordered_lab_test_id>", UploadReportView.as_view(), "lab-upload-report"),

    # Office
    *route("office/add-medicine", AddMedicineView.as_view(), "office-add-medicine"),
    *route("office/medicines", MedicineListView.as_view(), "office-medicines"),
    *route("office/add-lab-test", AddLabTestView.as_view(), "office-add-lab-test"),
    *route("office/lab-tests", LabTestListView.as_view(), "office-lab-tests"),
    *route("office/reports/daily-visits", DailyVisitsView.as_view(), "office-daily-visits"),
    *route("office/reports/daily-medicines", DailyMedicinesView.as_view(), "office-daily-medicines"),
    *route("office/reports/daily-lab-tests", DailyLabTestsView.as_view(), "office-daily-lab-tests"),

    # Invalidation + timeline
    *route("notifications/topics", TopicVersionsView.as_view(), "notification-topics"),
    *route("visits/<int:visit_id>/timeline", VisitTimelineView.as_view(), "visit-timeline"),
]
