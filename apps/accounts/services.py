import logging

import pyotp
from django.conf import settings
from django.core import signing
from django.utils import timezone
from django.utils.crypto import constant_time_compare

from .models import LoginSession, Owner

logger = logging.getLogger(__name__)


class InvalidCredentials(Exception):
    pass


class TwoFactorError(Exception):
    pass


class OwnerAuthService:
    """
    Service for the single configured administrator identity
    """

    @staticmethod
    def get_owner():
        """
        Fetch the owner row, creating it from settings on first use
        """
        owner, created = Owner.objects.get_or_create(
            email=settings.OWNER_EMAIL.lower(),
            defaults={
                'name': settings.OWNER_NAME,
                'is_staff': True,
                'is_superuser': True,
            }
        )

        if created:
            owner.set_password(settings.OWNER_PASSWORD)
            owner.set_access_code(settings.OWNER_ACCESS_CODE)
            owner.save(update_fields=['password', 'access_code'])
            logger.info("Owner account %s materialized", owner.email)

        return owner

    @staticmethod
    def sync_credentials(owner):
        """
        Re-hash the stored password and access code when the configured
        values have changed since the row was created
        """
        update_fields = []

        if not owner.check_password(settings.OWNER_PASSWORD):
            owner.set_password(settings.OWNER_PASSWORD)
            update_fields.append('password')

        if not owner.check_access_code(settings.OWNER_ACCESS_CODE):
            owner.set_access_code(settings.OWNER_ACCESS_CODE)
            update_fields.append('access_code')

        if update_fields:
            owner.save(update_fields=update_fields)
            logger.info("Owner credentials resynced from settings: %s", ', '.join(update_fields))

        return owner

    @staticmethod
    def check_credentials(owner, email, access_code, password):
        """
        Check submitted credentials against the owner's stored hashes
        All three checks run regardless of earlier mismatches
        """
        results = [
            constant_time_compare((email or '').lower(), owner.email),
            owner.check_access_code(access_code or ''),
            owner.check_password(password or ''),
        ]
        return all(results)

    @staticmethod
    def record_login_session(owner, device_info, is_successful):
        return LoginSession.objects.create(
            owner=owner,
            is_successful=is_successful,
            **device_info
        )

    @staticmethod
    def authenticate(email, access_code, password, device_info):
        """
        Check credentials and record the attempt
        Returns the owner on success, raises InvalidCredentials otherwise
        """
        owner = OwnerAuthService.get_owner()

        if not settings.OWNER_ACCESS_CODE or not settings.OWNER_PASSWORD:
            OwnerAuthService.record_login_session(owner, device_info, is_successful=False)
            logger.error("Owner credentials are not configured")
            raise InvalidCredentials("Invalid credentials")

        OwnerAuthService.sync_credentials(owner)

        if not OwnerAuthService.check_credentials(owner, email, access_code, password):
            OwnerAuthService.record_login_session(owner, device_info, is_successful=False)
            logger.warning("Failed owner login from %s", device_info.get('ip_address'))
            raise InvalidCredentials("Invalid credentials")

        owner.last_login = timezone.now()
        owner.save(update_fields=['last_login'])
        OwnerAuthService.record_login_session(owner, device_info, is_successful=True)
        logger.info("Owner login from %s", device_info.get('ip_address'))

        return owner


class TwoFactorService:
    """
    Service for TOTP second factor management
    """
    CHALLENGE_SALT = 'accounts.two-factor-login'

    @staticmethod
    def setup(owner):
        """
        Generate a new secret; 2FA stays disabled until a token is verified
        Returns (secret, otpauth_url)
        """
        secret = pyotp.random_base32()
        owner.totp_secret = secret
        owner.totp_enabled = False
        owner.save(update_fields=['totp_secret', 'totp_enabled', 'updated_at'])

        otpauth_url = pyotp.TOTP(secret).provisioning_uri(
            name=owner.email,
            issuer_name=settings.TOTP_ISSUER
        )
        logger.info("2FA setup started for %s", owner.email)
        return secret, otpauth_url

    @staticmethod
    def verify_token(owner, token):
        if not owner.totp_secret:
            raise TwoFactorError("2FA is not set up")

        return pyotp.TOTP(owner.totp_secret).verify(
            token,
            valid_window=settings.TOTP_VALID_WINDOW
        )

    @staticmethod
    def enable(owner, token):
        """
        Enable 2FA once the owner proves possession of the secret
        """
        if not TwoFactorService.verify_token(owner, token):
            return False

        owner.totp_enabled = True
        owner.save(update_fields=['totp_enabled', 'updated_at'])
        logger.info("2FA enabled for %s", owner.email)
        return True

    @staticmethod
    def disable(owner):
        owner.totp_secret = None
        owner.totp_enabled = False
        owner.save(update_fields=['totp_secret', 'totp_enabled', 'updated_at'])
        logger.info("2FA disabled for %s", owner.email)

    @staticmethod
    def issue_challenge(owner):
        """
        Signed, time-limited proof that the password step succeeded
        """
        return signing.dumps({'owner_id': owner.pk}, salt=TwoFactorService.CHALLENGE_SALT)

    @staticmethod
    def resolve_challenge(challenge):
        try:
            payload = signing.loads(
                challenge,
                salt=TwoFactorService.CHALLENGE_SALT,
                max_age=settings.TWO_FACTOR_CHALLENGE_MAX_AGE
            )
        except signing.BadSignature:
            raise TwoFactorError("Invalid or expired login challenge")

        try:
            return Owner.objects.get(pk=payload['owner_id'], is_active=True)
        except Owner.DoesNotExist:
            raise TwoFactorError("Invalid or expired login challenge")

    @staticmethod
    def complete_login(challenge, token):
        """
        Second login step; returns the owner when the TOTP token is valid
        """
        owner = TwoFactorService.resolve_challenge(challenge)

        if not owner.totp_enabled or not TwoFactorService.verify_token(owner, token):
            logger.warning("Rejected 2FA login for %s", owner.email)
            raise TwoFactorError("Invalid 2FA token")

        logger.info("2FA login completed for %s", owner.email)
        return owner
