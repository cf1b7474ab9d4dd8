"""
Tests for owner authentication, login auditing and two-factor login
"""
from unittest.mock import MagicMock, patch

import pyotp
import requests
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from .device import collect_device_info, get_client_ip, lookup_location
from .models import LoginSession, Owner
from .services import InvalidCredentials, OwnerAuthService, TwoFactorError, TwoFactorService

CHROME_ON_WINDOWS = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

LOGIN_PAYLOAD = {
    'email': 'Owner@Example.com',
    'accessCode': 'ACCESS-2024',
    'password': 'S3cret-Password!',
}


def geolocation_response(**overrides):
    data = {
        'ip': '8.8.8.8',
        'city': 'Mountain View',
        'region': 'California',
        'country_name': 'United States',
        'country_code': 'US',
        'latitude': 37.42,
        'longitude': -122.08,
        'timezone': 'America/Los_Angeles',
        'org': 'GOOGLE',
    }
    data.update(overrides)
    response = MagicMock()
    response.json.return_value = data
    return response


class OwnerAuthServiceTestCase(TestCase):
    """Test cases for OwnerAuthService"""

    def test_get_owner_materializes_configured_identity(self):
        owner = OwnerAuthService.get_owner()

        self.assertEqual(owner.email, 'owner@example.com')
        self.assertEqual(owner.name, 'Test Owner')
        self.assertTrue(owner.is_staff)
        self.assertTrue(owner.check_password('S3cret-Password!'))
        self.assertTrue(owner.check_access_code('ACCESS-2024'))
        self.assertNotEqual(owner.access_code, 'ACCESS-2024')

        self.assertEqual(OwnerAuthService.get_owner().pk, owner.pk)
        self.assertEqual(Owner.objects.count(), 1)

    def test_check_credentials(self):
        owner = OwnerAuthService.get_owner()
        check = OwnerAuthService.check_credentials

        self.assertTrue(check(owner, 'OWNER@example.com', 'ACCESS-2024', 'S3cret-Password!'))
        self.assertFalse(check(owner, 'other@example.com', 'ACCESS-2024', 'S3cret-Password!'))
        self.assertFalse(check(owner, 'owner@example.com', 'WRONG-CODE', 'S3cret-Password!'))
        self.assertFalse(check(owner, 'owner@example.com', 'ACCESS-2024', 'wrong-password'))

    @override_settings(OWNER_PASSWORD='')
    def test_authenticate_without_configured_password(self):
        """An empty configured password never authenticates, and the attempt is recorded"""
        with self.assertRaises(InvalidCredentials):
            OwnerAuthService.authenticate('owner@example.com', 'ACCESS-2024', '', {'ip_address': None})

        session = LoginSession.objects.get()
        self.assertFalse(session.is_successful)

    def test_changed_settings_resync_stored_hashes(self):
        """Rotated credentials replace the stored hashes on the next login"""
        owner = OwnerAuthService.get_owner()

        with override_settings(OWNER_PASSWORD='New-Password-1', OWNER_ACCESS_CODE='ACCESS-2025'):
            with self.assertRaises(InvalidCredentials):
                OwnerAuthService.authenticate('owner@example.com', 'ACCESS-2024', 'S3cret-Password!', {'ip_address': None})

            result = OwnerAuthService.authenticate('owner@example.com', 'ACCESS-2025', 'New-Password-1', {'ip_address': None})

        self.assertEqual(result.pk, owner.pk)
        owner.refresh_from_db()
        self.assertTrue(owner.check_password('New-Password-1'))
        self.assertFalse(owner.check_password('S3cret-Password!'))
        self.assertTrue(owner.check_access_code('ACCESS-2025'))
        self.assertNotEqual(owner.access_code, 'ACCESS-2025')

    def test_login_checks_stored_hashes(self):
        """Authentication goes through the owner's stored hashes"""
        OwnerAuthService.get_owner()

        with patch.object(Owner, 'check_access_code', return_value=True) as mock_access, \
                patch.object(Owner, 'check_password', return_value=True) as mock_password:
            OwnerAuthService.authenticate('owner@example.com', 'anything', 'anything', {'ip_address': None})

        mock_access.assert_any_call('anything')
        mock_password.assert_any_call('anything')


class OwnerLoginViewTestCase(APITestCase):
    """Test cases for OwnerLoginView"""

    def setUp(self):
        self.url = reverse('accounts:owner-login')

    def test_login_success(self):
        """Valid credentials return a token, set cookies and record the session"""
        response = self.client.post(self.url, LOGIN_PAYLOAD, HTTP_USER_AGENT=CHROME_ON_WINDOWS)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('token', response.data)
        self.assertEqual(response.data['owner']['email'], 'owner@example.com')
        self.assertIn('access_token', response.cookies)
        self.assertIn('refresh_token', response.cookies)
        self.assertTrue(response.cookies['access_token']['httponly'])

        device_info = response.data['deviceInfo']
        self.assertEqual(device_info['ipAddress'], '127.0.0.1')
        self.assertEqual(device_info['browserName'], 'Chrome')
        self.assertEqual(device_info['osName'], 'Windows')
        self.assertEqual(device_info['deviceType'], 'desktop')

        session = LoginSession.objects.get()
        self.assertTrue(session.is_successful)
        self.assertEqual(session.ip_address, '127.0.0.1')
        self.assertEqual(session.browser_name, 'Chrome')

        owner = Owner.objects.get()
        self.assertIsNotNone(owner.last_login)

    def test_login_wrong_password(self):
        """Failed attempts answer 401 and are still recorded"""
        response = self.client.post(self.url, {**LOGIN_PAYLOAD, 'password': 'wrong-password'})

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Invalid credentials')
        self.assertNotIn('access_token', response.cookies)

        session = LoginSession.objects.get()
        self.assertFalse(session.is_successful)

    def test_login_wrong_access_code(self):
        response = self.client.post(self.url, {**LOGIN_PAYLOAD, 'accessCode': 'WRONG-CODE'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_invalid_payload(self):
        response = self.client.post(self.url, {'email': 'not-an-email', 'accessCode': '123', 'password': 'abc'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)
        self.assertIn('accessCode', response.data)
        self.assertIn('password', response.data)
        self.assertEqual(LoginSession.objects.count(), 0)

    @patch('apps.accounts.device.requests.get')
    def test_login_records_location_for_public_ip(self, mock_get):
        mock_get.return_value = geolocation_response()

        response = self.client.post(self.url, LOGIN_PAYLOAD, HTTP_X_FORWARDED_FOR='8.8.8.8, 10.0.0.1')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deviceInfo']['location'], 'Mountain View, California, United States')

        session = LoginSession.objects.get()
        self.assertEqual(session.ip_address, '8.8.8.8')
        self.assertEqual(session.country_code, 'US')
        self.assertEqual(session.isp, 'GOOGLE')
        mock_get.assert_called_once()
        self.assertIn('/8.8.8.8/json/', mock_get.call_args[0][0])

    def test_login_with_2fa_enabled_returns_challenge(self):
        """With 2FA on, the password step yields a challenge and no token"""
        owner = OwnerAuthService.get_owner()
        owner.totp_secret = pyotp.random_base32()
        owner.totp_enabled = True
        owner.save()

        response = self.client.post(self.url, LOGIN_PAYLOAD)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['needs2FA'])
        self.assertIn('challenge', response.data)
        self.assertNotIn('token', response.data)
        self.assertNotIn('access_token', response.cookies)

    def test_register_disabled(self):
        response = self.client.post(reverse('accounts:owner-register'), LOGIN_PAYLOAD)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class OwnerSessionTestCase(APITestCase):
    """Test cases for authenticated owner endpoints"""

    def setUp(self):
        self.owner = OwnerAuthService.get_owner()
        self.refresh = RefreshToken.for_user(self.owner)

    def authenticate(self):
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.refresh.access_token}')

    def test_profile_requires_authentication(self):
        response = self.client.get(reverse('accounts:owner-profile'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_with_bearer_token(self):
        self.authenticate()

        response = self.client.get(reverse('accounts:owner-profile'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'owner@example.com')
        self.assertFalse(response.data['totpEnabled'])

    def test_profile_with_cookie(self):
        self.client.cookies['access_token'] = str(self.refresh.access_token)

        response = self.client.get(reverse('accounts:owner-profile'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_profile_with_owner_token(self):
        response = self.client.get(reverse('accounts:owner-profile'), HTTP_X_OWNER_TOKEN='legacy-owner-token')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_invalid_bearer_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = self.client.get(reverse('accounts:owner-profile'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_sessions_newest_first_and_limited(self):
        for i in range(55):
            LoginSession.objects.create(owner=self.owner, is_successful=i % 2 == 0, ip_address='127.0.0.1')
        self.authenticate()

        response = self.client.get(reverse('accounts:owner-login-sessions'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 50)
        self.assertGreaterEqual(response.data[0]['loginAt'], response.data[-1]['loginAt'])

    def test_current_device(self):
        self.authenticate()

        response = self.client.get(reverse('accounts:owner-current-device'), HTTP_USER_AGENT=CHROME_ON_WINDOWS)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ipAddress'], '127.0.0.1')
        self.assertEqual(response.data['browserName'], 'Chrome')
        self.assertEqual(response.data['location'], '')

    def test_logout_clears_cookies(self):
        self.authenticate()

        response = self.client.post(reverse('accounts:owner-logout'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.cookies['access_token'].value, '')
        self.assertEqual(response.cookies['refresh_token'].value, '')

    def test_refresh_token(self):
        self.client.cookies['refresh_token'] = str(self.refresh)

        response = self.client.post(reverse('accounts:owner-refresh-token'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('token', response.data)
        self.assertIn('access_token', response.cookies)

    def test_refresh_token_missing(self):
        response = self.client.post(reverse('accounts:owner-refresh-token'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_token_invalid(self):
        self.client.cookies['refresh_token'] = 'garbage'
        response = self.client.post(reverse('accounts:owner-refresh-token'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TwoFactorTestCase(APITestCase):
    """Test cases for TOTP setup, verification and login"""

    def setUp(self):
        self.owner = OwnerAuthService.get_owner()
        token = RefreshToken.for_user(self.owner).access_token
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def setup_secret(self):
        response = self.client.post(reverse('accounts:2fa-setup'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        return response.data['secretBase32']

    def test_setup_returns_secret_and_url(self):
        response = self.client.post(reverse('accounts:2fa-setup'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['otpauthUrl'].startswith('otpauth://totp/'))
        self.assertIn('issuer=Restaurant', response.data['otpauthUrl'])

        self.owner.refresh_from_db()
        self.assertEqual(self.owner.totp_secret, response.data['secretBase32'])
        self.assertFalse(self.owner.totp_enabled)

    def test_setup_with_get(self):
        response = self.client.get(reverse('accounts:2fa-setup'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_setup_rejects_owner_token(self):
        """2FA management requires a session token"""
        self.client.credentials(HTTP_X_OWNER_TOKEN='legacy-owner-token')
        response = self.client.post(reverse('accounts:2fa-setup'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_verify_enables_2fa(self):
        secret = self.setup_secret()

        response = self.client.post(reverse('accounts:2fa-verify'), {'token': pyotp.TOTP(secret).now()})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['totpEnabled'])
        self.owner.refresh_from_db()
        self.assertTrue(self.owner.totp_enabled)

    def test_verify_wrong_token(self):
        self.setup_secret()

        with patch('apps.accounts.services.pyotp.TOTP.verify', return_value=False):
            response = self.client.post(reverse('accounts:2fa-verify'), {'token': '000000'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.owner.refresh_from_db()
        self.assertFalse(self.owner.totp_enabled)

    def test_verify_without_setup(self):
        response = self.client.post(reverse('accounts:2fa-verify'), {'token': '123456'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], '2FA is not set up')

    def test_verify_malformed_token(self):
        self.setup_secret()
        response = self.client.post(reverse('accounts:2fa-verify'), {'token': '12ab56'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_disable(self):
        secret = self.setup_secret()
        self.client.post(reverse('accounts:2fa-verify'), {'token': pyotp.TOTP(secret).now()})

        response = self.client.post(reverse('accounts:2fa-disable'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.owner.refresh_from_db()
        self.assertFalse(self.owner.totp_enabled)
        self.assertIsNone(self.owner.totp_secret)

    def test_two_step_login(self):
        """Password step plus TOTP step yields a session"""
        secret = self.setup_secret()
        self.client.post(reverse('accounts:2fa-verify'), {'token': pyotp.TOTP(secret).now()})
        self.client.credentials()

        response = self.client.post(reverse('accounts:owner-login'), LOGIN_PAYLOAD)
        challenge = response.data['challenge']

        response = self.client.post(reverse('accounts:2fa-login'), {
            'challenge': challenge,
            'token': pyotp.TOTP(secret).now(),
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('token', response.data)
        self.assertIn('access_token', response.cookies)

    def test_two_step_login_wrong_token(self):
        self.owner.totp_secret = pyotp.random_base32()
        self.owner.totp_enabled = True
        self.owner.save()
        challenge = TwoFactorService.issue_challenge(self.owner)

        with patch('apps.accounts.services.pyotp.TOTP.verify', return_value=False):
            response = self.client.post(reverse('accounts:2fa-login'), {'challenge': challenge, 'token': '123456'})

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Invalid 2FA token')

    def test_two_step_login_tampered_challenge(self):
        self.owner.totp_secret = pyotp.random_base32()
        self.owner.totp_enabled = True
        self.owner.save()
        challenge = TwoFactorService.issue_challenge(self.owner)

        response = self.client.post(reverse('accounts:2fa-login'), {
            'challenge': challenge + 'x',
            'token': pyotp.TOTP(self.owner.totp_secret).now(),
        })

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @override_settings(TWO_FACTOR_CHALLENGE_MAX_AGE=-1)
    def test_expired_challenge(self):
        self.owner.totp_secret = pyotp.random_base32()
        self.owner.totp_enabled = True
        self.owner.save()
        challenge = TwoFactorService.issue_challenge(self.owner)

        with self.assertRaises(TwoFactorError):
            TwoFactorService.complete_login(challenge, pyotp.TOTP(self.owner.totp_secret).now())

    def test_two_step_login_when_2fa_disabled(self):
        """A challenge is useless once 2FA is turned off"""
        challenge = TwoFactorService.issue_challenge(self.owner)

        response = self.client.post(reverse('accounts:2fa-login'), {'challenge': challenge, 'token': '123456'})

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class DeviceInfoTestCase(TestCase):
    """Test cases for client IP and device detection"""

    def setUp(self):
        self.factory = RequestFactory()

    def test_get_client_ip_prefers_forwarded_for(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1', REMOTE_ADDR='10.0.0.2')
        self.assertEqual(get_client_ip(request), '203.0.113.7')

    def test_get_client_ip_real_ip_header(self):
        request = self.factory.get('/', HTTP_X_REAL_IP='203.0.113.9', REMOTE_ADDR='10.0.0.2')
        self.assertEqual(get_client_ip(request), '203.0.113.9')

    def test_get_client_ip_strips_ipv4_mapped_prefix(self):
        request = self.factory.get('/', REMOTE_ADDR='::ffff:192.168.1.5')
        self.assertEqual(get_client_ip(request), '192.168.1.5')

    def test_get_client_ip_invalid(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='unknown')
        self.assertIsNone(get_client_ip(request))

    @patch('apps.accounts.device.requests.get')
    def test_lookup_location_skips_private_ip(self, mock_get):
        self.assertIsNone(lookup_location('192.168.1.5'))
        self.assertIsNone(lookup_location(None))
        mock_get.assert_not_called()

    @patch('apps.accounts.device.requests.get')
    def test_lookup_location_failure(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout('timed out')
        self.assertIsNone(lookup_location('8.8.8.8'))

    @patch('apps.accounts.device.requests.get')
    def test_lookup_location_error_payload(self, mock_get):
        mock_get.return_value = geolocation_response(error=True, reason='RateLimited')
        self.assertIsNone(lookup_location('8.8.8.8'))

    def test_collect_device_info_mobile(self):
        request = self.factory.get(
            '/',
            HTTP_USER_AGENT=(
                'Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 '
                '(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1'
            ),
        )

        info = collect_device_info(request)

        self.assertEqual(info['device_type'], 'mobile')
        self.assertEqual(info['os_name'], 'iOS')
        self.assertEqual(info['ip_address'], '127.0.0.1')
        self.assertEqual(info['location'], '')
