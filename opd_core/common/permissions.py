# opd_core/common/permissions.py

from __future__ import annotations

from typing import Set

from rest_framework.permissions import BasePermission

# Role names stored on StaffProfile.role
ROLE_MASTER = "Master"
ROLE_OP = "OP"
ROLE_DOCTOR = "Doctor"
ROLE_PHARMACY = "Pharmacy"
ROLE_LAB = "Lab"
ROLE_OFFICE = "Office"

ALL_ROLES = (ROLE_OP, ROLE_DOCTOR, ROLE_PHARMACY, ROLE_LAB, ROLE_OFFICE, ROLE_MASTER)


def user_role(user) -> str | None:
    """
    Resolve the single role of a staff user.

    Superusers without a profile are treated as Master so a freshly
    bootstrapped install can create the first staff accounts.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return None

    profile = getattr(user, "staff_profile", None)
    if profile is not None and profile.role:
        return profile.role

    if getattr(user, "is_superuser", False):
        return ROLE_MASTER
    return None


def _user_roles(user) -> Set[str]:
    role = user_role(user)
    return {role} if role else set()


class BaseRolePermission(BasePermission):
    """
    Role-based access control driven by the view.

    Views declare ``allowed_roles_per_method``: HTTP method -> set of roles.
    A "*" key applies to any method not listed. HEAD and OPTIONS follow GET.
    Superusers pass every check.
    """
    message = "You do not have permission to perform this action."

    allowed_roles_per_method: dict[str, set[str]] = {}

    def _allowed_for(self, request, view) -> set[str] | None:
        mapping = getattr(view, "allowed_roles_per_method", None) or self.allowed_roles_per_method
        method = request.method.upper()
        if method in ("HEAD", "OPTIONS"):
            method = "GET"
        if method in mapping:
            return mapping[method]
        return mapping.get("*")

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        if getattr(user, "is_superuser", False):
            return True

        allowed = self._allowed_for(request, view)
        if allowed is None:
            # Unknown method => deny by default
            return False

        return bool(_user_roles(user) & set(allowed))

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


# Specific permission classes for each dashboard

class MasterPermission(BaseRolePermission):
    """Staff administration"""
    allowed_roles_per_method = {"*": {ROLE_MASTER}}


class OpDeskPermission(BaseRolePermission):
    """Registration, approvals and visit creation"""
    allowed_roles_per_method = {"*": {ROLE_OP}}


class DoctorPermission(BaseRolePermission):
    """Consultation and post-lab review"""
    allowed_roles_per_method = {"*": {ROLE_DOCTOR}}


class PharmacyPermission(BaseRolePermission):
    """Dispensing queue"""
    allowed_roles_per_method = {"*": {ROLE_PHARMACY}}


class LabPermission(BaseRolePermission):
    """Lab queue and report upload"""
    allowed_roles_per_method = {"*": {ROLE_LAB}}


class OfficePermission(BaseRolePermission):
    """Stock-in, lab test catalogue and reports"""
    allowed_roles_per_method = {"*": {ROLE_OFFICE}}


class CataloguePermission(BaseRolePermission):
    """Medicine and lab test catalogues: read by the clinical desks, written by the office"""
    allowed_roles_per_method = {
        "GET": {ROLE_OFFICE, ROLE_DOCTOR, ROLE_PHARMACY},
        "POST": {ROLE_OFFICE},
    }
