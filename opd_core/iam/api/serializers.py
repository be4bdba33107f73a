# opd_core/iam/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from opd_core.common.permissions import user_role
from opd_core.common.validators import phone_validator
from opd_core.iam.models import StaffRole


class LoginRequestSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)


class SessionUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    role = serializers.SerializerMethodField()

    def get_role(self, user) -> str | None:
        return user_role(user)


class LoginResponseSerializer(serializers.Serializer):
    token = serializers.CharField()
    refresh = serializers.CharField()
    user = SessionUserSerializer()


class MessageSerializer(serializers.Serializer):
    msg = serializers.CharField()


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(trim_whitespace=False)


class StaffSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    mobile = serializers.CharField(source="staff_profile.mobile", read_only=True)
    role = serializers.CharField(source="staff_profile.role", read_only=True)
    createdAt = serializers.DateTimeField(source="date_joined", read_only=True)


class StaffCreateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    mobile = serializers.CharField(required=False, allow_blank=True, default="", validators=[phone_validator])
    role = serializers.ChoiceField(choices=StaffRole.choices, default=StaffRole.DOCTOR)
    password = serializers.CharField(trim_whitespace=False)


class StaffUpdateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField(required=False, allow_blank=True)
    mobile = serializers.CharField(required=False, allow_blank=True, validators=[phone_validator])
    role = serializers.ChoiceField(choices=StaffRole.choices, required=False)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
