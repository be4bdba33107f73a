# opd_core/iam/api/auth.py

from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from opd_core.iam.api.serializers import (
    ForgotPasswordSerializer,
    LoginRequestSerializer,
    LoginResponseSerializer,
    MessageSerializer,
    ResetPasswordSerializer,
    SessionUserSerializer,
)
from opd_core.iam.services import PasswordResetService

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MSG = "If an account with that email exists, a password reset link has been sent."


class LoginView(APIView):
    """
    POST /auth/login

    Header-only bearer auth: the access token is returned in the body and the
    client keeps it for the session. The role drives dashboard routing.
    """
    permission_classes = [AllowAny]

    @extend_schema(
        request=LoginRequestSerializer,
        responses={200: LoginResponseSerializer},
        tags=["IAM"],
    )
    def post(self, request):
        ser = LoginRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        user = authenticate(
            request,
            username=ser.validated_data["username"],
            password=ser.validated_data["password"],
        )
        if user is None:
            logger.info("Failed login for %s", ser.validated_data["username"])
            raise AuthenticationFailed("Invalid username or password.")

        refresh = RefreshToken.for_user(user)
        return Response(
            {
                "token": str(refresh.access_token),
                "refresh": str(refresh),
                "user": SessionUserSerializer(user).data,
            },
            status=status.HTTP_200_OK,
        )


class ForgotPasswordView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(request=ForgotPasswordSerializer, responses={200: MessageSerializer}, tags=["IAM"])
    def post(self, request):
        ser = ForgotPasswordSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        # Same answer for known and unknown addresses.
        PasswordResetService.request_reset(email=ser.validated_data["email"])
        return Response({"msg": FORGOT_PASSWORD_MSG}, status=status.HTTP_200_OK)


class ResetPasswordView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []

    @extend_schema(request=ResetPasswordSerializer, responses={200: MessageSerializer}, tags=["IAM"])
    def post(self, request, token: str):
        ser = ResetPasswordSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        PasswordResetService.reset_password(token=token, password=ser.validated_data["password"])
        return Response({"msg": "Password has been reset successfully."}, status=status.HTTP_200_OK)
