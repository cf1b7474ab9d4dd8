import logging

from django.conf import settings
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .authentication import CookieJWTAuthentication
from .device import collect_device_info, device_info_payload
from .serializers import (
    LoginSessionSerializer,
    OwnerLoginSerializer,
    OwnerProfileSerializer,
    TwoFactorLoginSerializer,
    TwoFactorTokenSerializer,
)
from .services import InvalidCredentials, OwnerAuthService, TwoFactorError, TwoFactorService

logger = logging.getLogger(__name__)

LOGIN_SESSIONS_LIMIT = 50


def set_jwt_cookies(response, refresh_token):
    """
    Helper function to set JWT tokens in HTTP-only cookies
    """
    access_token = refresh_token.access_token

    response.set_cookie(
        key=settings.COOKIE_ACCESS_TOKEN_NAME,
        value=str(access_token),
        max_age=int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
        path='/',
        secure=settings.COOKIE_SECURE,
        httponly=settings.COOKIE_HTTPONLY,
        samesite=settings.COOKIE_SAMESITE,
    )

    response.set_cookie(
        key=settings.COOKIE_REFRESH_TOKEN_NAME,
        value=str(refresh_token),
        max_age=int(settings.SIMPLE_JWT['REFRESH_TOKEN_LIFETIME'].total_seconds()),
        path='/',
        secure=settings.COOKIE_SECURE,
        httponly=settings.COOKIE_HTTPONLY,
        samesite=settings.COOKIE_SAMESITE,
    )

    return response


def clear_jwt_cookies(response):
    """
    Helper function to clear JWT cookies (for logout)
    """
    for cookie_name in (settings.COOKIE_ACCESS_TOKEN_NAME, settings.COOKIE_REFRESH_TOKEN_NAME):
        response.delete_cookie(cookie_name, path='/', samesite=settings.COOKIE_SAMESITE)

    return response


def session_response(owner, message, extra=None):
    """
    Issue a session token for the owner, in the body and as a cookie
    """
    refresh = RefreshToken.for_user(owner)

    data = {
        'message': message,
        'token': str(refresh.access_token),
        'owner': OwnerProfileSerializer(owner).data,
    }
    if extra:
        data.update(extra)

    response = Response(data, status=status.HTTP_200_OK)
    set_jwt_cookies(response, refresh)
    return response


class OwnerLoginView(APIView):
    """
    API endpoint for the administrator password step

    Every attempt is recorded as a LoginSession. When 2FA is enabled the
    response carries a challenge for /admin/2fa/login/ instead of a token.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Owner login with email, access code and password.",
        request_body=OwnerLoginSerializer,
        responses={
            200: openapi.Response(
                description="Logged in, or second factor required",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'token': openapi.Schema(type=openapi.TYPE_STRING),
                        'owner': openapi.Schema(type=openapi.TYPE_OBJECT),
                        'deviceInfo': openapi.Schema(type=openapi.TYPE_OBJECT),
                        'needs2FA': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                        'challenge': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                )
            ),
            400: openapi.Response(description="Invalid request"),
            401: openapi.Response(description="Invalid credentials"),
        },
        tags=['Owner']
    )
    def post(self, request):
        serializer = OwnerLoginSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        device_info = collect_device_info(request)

        try:
            owner = OwnerAuthService.authenticate(
                serializer.validated_data['email'],
                serializer.validated_data['access_code'],
                serializer.validated_data['password'],
                device_info
            )
        except InvalidCredentials as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_401_UNAUTHORIZED
            )

        if owner.totp_enabled:
            return Response(
                {
                    'message': '2FA token required',
                    'needs2FA': True,
                    'challenge': TwoFactorService.issue_challenge(owner),
                },
                status=status.HTTP_200_OK
            )

        return session_response(
            owner,
            'Login successful',
            extra={'deviceInfo': device_info_payload(device_info)}
        )


class OwnerRegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Owner registration is disabled; the owner identity comes from configuration.",
        responses={403: openapi.Response(description="Registration disabled")},
        tags=['Owner']
    )
    def post(self, request):
        return Response(
            {'error': 'Owner registration is disabled'},
            status=status.HTTP_403_FORBIDDEN
        )


class OwnerProfileView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Current owner profile.",
        responses={
            200: openapi.Response(description="Owner profile", schema=OwnerProfileSerializer),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Owner']
    )
    def get(self, request):
        serializer = OwnerProfileSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)


class LoginSessionListView(APIView):
    """
    API endpoint listing the most recent login attempts
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="The last 50 login attempts, newest first.",
        responses={
            200: openapi.Response(description="Login sessions", schema=LoginSessionSerializer(many=True)),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Owner']
    )
    def get(self, request):
        sessions = request.user.login_sessions.order_by('-login_at')[:LOGIN_SESSIONS_LIMIT]
        serializer = LoginSessionSerializer(sessions, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


class CurrentDeviceView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Device and location details of the current request.",
        responses={
            200: openapi.Response(description="Device info"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Owner']
    )
    def get(self, request):
        device_info = collect_device_info(request)
        return Response(device_info_payload(device_info), status=status.HTTP_200_OK)


class OwnerLogoutView(APIView):
    """
    API endpoint to logout the owner
    Clears JWT cookies
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Logout and clear the session cookies.",
        responses={
            200: openapi.Response(description="Logged out"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Owner']
    )
    def post(self, request):
        response = Response(
            {'message': 'Logged out successfully'},
            status=status.HTTP_200_OK
        )
        clear_jwt_cookies(response)
        return response


class RefreshTokenView(APIView):
    """
    API endpoint to refresh the access token from the refresh cookie
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Refresh the access token using the refresh token cookie.",
        responses={
            200: openapi.Response(description="Token refreshed"),
            401: openapi.Response(description="Invalid refresh token"),
        },
        tags=['Owner']
    )
    def post(self, request):
        refresh_token = request.COOKIES.get(settings.COOKIE_REFRESH_TOKEN_NAME)

        if not refresh_token:
            return Response(
                {'error': 'Refresh token not found'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        try:
            access_token = RefreshToken(refresh_token).access_token
        except TokenError:
            return Response(
                {'error': 'Invalid refresh token'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        response = Response(
            {'message': 'Token refreshed successfully', 'token': str(access_token)},
            status=status.HTTP_200_OK
        )
        response.set_cookie(
            key=settings.COOKIE_ACCESS_TOKEN_NAME,
            value=str(access_token),
            max_age=int(settings.SIMPLE_JWT['ACCESS_TOKEN_LIFETIME'].total_seconds()),
            path='/',
            secure=settings.COOKIE_SECURE,
            httponly=settings.COOKIE_HTTPONLY,
            samesite=settings.COOKIE_SAMESITE,
        )
        return response


class TwoFactorSetupView(APIView):
    """
    API endpoint generating a fresh TOTP secret

    2FA stays disabled until /admin/2fa/verify/ accepts a token.
    """
    permission_classes = [IsAuthenticated]
    authentication_classes = [CookieJWTAuthentication]

    @swagger_auto_schema(
        operation_description="Generate a new TOTP secret and otpauth URL.",
        responses={
            200: openapi.Response(
                description="New secret",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'otpauthUrl': openapi.Schema(type=openapi.TYPE_STRING),
                        'secretBase32': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                )
            ),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}],
        tags=['Two-factor']
    )
    def post(self, request):
        secret, otpauth_url = TwoFactorService.setup(request.user)
        return Response(
            {'otpauthUrl': otpauth_url, 'secretBase32': secret},
            status=status.HTTP_200_OK
        )

    def get(self, request):
        return self.post(request)


class TwoFactorVerifyView(APIView):
    permission_classes = [IsAuthenticated]
    authentication_classes = [CookieJWTAuthentication]

    @swagger_auto_schema(
        operation_description="Confirm the authenticator app and enable 2FA.",
        request_body=TwoFactorTokenSerializer,
        responses={
            200: openapi.Response(description="2FA enabled"),
            400: openapi.Response(description="Invalid token or 2FA not set up"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}],
        tags=['Two-factor']
    )
    def post(self, request):
        serializer = TwoFactorTokenSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            enabled = TwoFactorService.enable(request.user, serializer.validated_data['token'])
        except TwoFactorError as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )

        if not enabled:
            return Response(
                {'error': 'Invalid 2FA token'},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response(
            {'message': '2FA enabled', 'totpEnabled': True},
            status=status.HTTP_200_OK
        )


class TwoFactorDisableView(APIView):
    permission_classes = [IsAuthenticated]
    authentication_classes = [CookieJWTAuthentication]

    @swagger_auto_schema(
        operation_description="Disable 2FA and discard the secret.",
        responses={
            200: openapi.Response(description="2FA disabled"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}],
        tags=['Two-factor']
    )
    def post(self, request):
        TwoFactorService.disable(request.user)
        return Response(
            {'message': '2FA disabled', 'totpEnabled': False},
            status=status.HTTP_200_OK
        )


class TwoFactorLoginView(APIView):
    """
    API endpoint for the second login step
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Exchange the login challenge and a TOTP token for a session token.",
        request_body=TwoFactorLoginSerializer,
        responses={
            200: openapi.Response(description="Logged in"),
            400: openapi.Response(description="Invalid request"),
            401: openapi.Response(description="Invalid challenge or token"),
        },
        tags=['Two-factor']
    )
    def post(self, request):
        serializer = TwoFactorLoginSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            owner = TwoFactorService.complete_login(
                serializer.validated_data['challenge'],
                serializer.validated_data['token']
            )
        except TwoFactorError as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_401_UNAUTHORIZED
            )

        return session_response(owner, 'Login successful')
