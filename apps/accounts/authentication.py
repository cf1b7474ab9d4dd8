from django.conf import settings
from django.utils.crypto import constant_time_compare
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

from .services import OwnerAuthService


class CookieJWTAuthentication(JWTAuthentication):
    """
    JWT authentication that reads the token from an HTTP-only cookie
    """

    def authenticate(self, request):
        # Try to get token from cookie first
        raw_token = request.COOKIES.get(settings.COOKIE_ACCESS_TOKEN_NAME)

        if raw_token is None:
            # Fall back to the Authorization header
            header = self.get_header(request)
            if header is None:
                return None

            raw_token = self.get_raw_token(header)
            if raw_token is None:
                return None

        try:
            validated_token = self.get_validated_token(raw_token)
            return self.get_user(validated_token), validated_token
        except (InvalidToken, TokenError):
            return None


class OwnerTokenAuthentication(BaseAuthentication):
    """
    Static shared-secret authentication through the X-Owner-Token header
    """
    header_name = 'HTTP_X_OWNER_TOKEN'

    def authenticate(self, request):
        token = request.META.get(self.header_name)
        if not token:
            return None

        expected = settings.OWNER_TOKEN
        if not expected or not constant_time_compare(token, expected):
            raise AuthenticationFailed('Invalid owner token')

        return OwnerAuthService.get_owner(), None

    def authenticate_header(self, request):
        return 'X-Owner-Token'
