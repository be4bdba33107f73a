# opd_core/iam/services.py
from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.mail import send_mail
from django.db import transaction
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode

from opd_core.audit.services import AuditService
from opd_core.common.errors import AlreadyExists, BusinessRuleViolation, NotFound, ValidationFailed
from opd_core.iam.models import StaffProfile, StaffRole
from opd_core.notifications import topics
from opd_core.notifications.services import notify

logger = logging.getLogger(__name__)


def _check_password(password: str, user=None) -> None:
    try:
        validate_password(password, user=user)
    except DjangoValidationError as e:
        raise ValidationFailed(" ".join(e.messages), details={"password": e.messages})


def _check_role(role: str) -> None:
    if role not in StaffRole.values:
        raise ValidationFailed(f"Unknown role '{role}'.", details={"role": list(StaffRole.values)})


class StaffService:
    """
    Master-only staff administration. Every change bumps staffListUpdate.
    """

    @staticmethod
    @transaction.atomic
    def create_staff(
        *,
        actor_user_id: int | None,
        username: str,
        password: str,
        role: str = StaffRole.DOCTOR,
        email: str = "",
        mobile: str = "",
    ):
        User = get_user_model()
        _check_role(role)

        if User.objects.filter(username__iexact=username).exists():
            raise AlreadyExists(f"Username '{username}' is already taken.")
        if email and User.objects.filter(email__iexact=email).exists():
            raise AlreadyExists(f"Email '{email}' is already in use.")

        _check_password(password)

        user = User.objects.create_user(username=username, email=email or "", password=password)
        StaffProfile.objects.create(user=user, role=role, mobile=mobile or "")

        AuditService.log(
            event_code="staff.created",
            entity_type="User",
            entity_id=user.id,
            actor_user_id=actor_user_id,
            metadata={"username": username, "role": role},
        )
        notify(topics.STAFF_LIST)
        logger.info("Staff account %s created with role %s", username, role)
        return user

    @staticmethod
    @transaction.atomic
    def update_staff(*, actor_user_id: int | None, user_id: int, data: dict):
        User = get_user_model()
        try:
            user = User.objects.select_for_update().get(id=user_id, staff_profile__isnull=False)
        except User.DoesNotExist:
            raise NotFound("Staff member not found.")

        profile = user.staff_profile
        changed: list[str] = []

        username = data.get("username")
        if username and username != user.username:
            if User.objects.filter(username__iexact=username).exclude(id=user.id).exists():
                raise AlreadyExists(f"Username '{username}' is already taken.")
            user.username = username
            changed.append("username")

        if "email" in data and (data["email"] or "") != user.email:
            email = data["email"] or ""
            if email and User.objects.filter(email__iexact=email).exclude(id=user.id).exists():
                raise AlreadyExists(f"Email '{email}' is already in use.")
            user.email = email
            changed.append("email")

        # Blank password on edit means "keep the current one".
        password = data.get("password")
        if password:
            _check_password(password, user=user)
            user.set_password(password)
            changed.append("password")

        if "role" in data and data["role"] and data["role"] != profile.role:
            _check_role(data["role"])
            profile.role = data["role"]
            changed.append("role")

        if "mobile" in data and (data["mobile"] or "") != profile.mobile:
            profile.mobile = data["mobile"] or ""
            changed.append("mobile")

        user.save()
        profile.save()

        AuditService.log(
            event_code="staff.updated",
            entity_type="User",
            entity_id=user.id,
            actor_user_id=actor_user_id,
            metadata={"updated_fields": sorted(changed)},
        )
        notify(topics.STAFF_LIST)
        return user

    @staticmethod
    @transaction.atomic
    def delete_staff(*, actor_user_id: int | None, user_id: int) -> None:
        """
        Remove a staff member from the roster. The account row stays so visits,
        dispensed lines and timeline events keep pointing at who did the work.
        """
        User = get_user_model()
        if actor_user_id is not None and int(user_id) == int(actor_user_id):
            raise BusinessRuleViolation("You cannot delete your own account.")

        try:
            user = User.objects.select_for_update().get(id=user_id, staff_profile__isnull=False)
        except User.DoesNotExist:
            raise NotFound("Staff member not found.")

        role = user.staff_profile.role
        user.is_active = False
        user.set_unusable_password()
        user.save(update_fields=["is_active", "password"])
        StaffProfile.objects.filter(user=user).delete()

        AuditService.log(
            event_code="staff.deactivated",
            entity_type="User",
            entity_id=user.id,
            actor_user_id=actor_user_id,
            metadata={"username": user.username, "role": role},
        )
        notify(topics.STAFF_LIST)
        logger.info("Staff account %s deactivated", user.username)


def make_reset_token(user) -> str:
    """uid-token pair, e.g. "Mw-c4z2f1-9b1e..."."""
    uid = urlsafe_base64_encode(force_bytes(user.pk))
    return f"{uid}-{default_token_generator.make_token(user)}"


def _user_from_reset_token(token: str):
    User = get_user_model()
    uid, sep, raw = (token or "").partition("-")
    if not sep or not raw:
        return None, None
    try:
        pk = force_str(urlsafe_base64_decode(uid))
        user = User.objects.get(pk=pk)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        return None, None
    return user, raw


class PasswordResetService:
    @staticmethod
    def request_reset(*, email: str) -> str | None:
        """
        Email a reset link when the address belongs to an active account.
        Returns the token (None for unknown addresses); callers must not leak it.
        """
        User = get_user_model()
        user = User.objects.filter(email__iexact=email, is_active=True).order_by("id").first()
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        token = make_reset_token(user)
        link = settings.OPD["PASSWORD_RESET_URL"].format(token=token)
        send_mail(
            subject="Password reset",
            message=(
                f"Hello {user.username},\n\n"
                f"Use the link below to reset your password:\n{link}\n\n"
                "If you did not request this, ignore this email."
            ),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
        )
        logger.info("Password reset email sent to user %s", user.id)
        return token

    @staticmethod
    @transaction.atomic
    def reset_password(*, token: str, password: str):
        user, raw = _user_from_reset_token(token)
        if user is None or not default_token_generator.check_token(user, raw):
            raise ValidationFailed("Password reset token is invalid or has expired.")

        _check_password(password, user=user)
        # Changing the hash invalidates the token.
        user.set_password(password)
        user.save(update_fields=["password"])

        AuditService.log(
            event_code="staff.password_reset",
            entity_type="User",
            entity_id=user.id,
            actor_user_id=user.id,
            metadata={},
        )
        return user
