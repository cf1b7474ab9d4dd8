from rest_framework import serializers

from .models import LoginSession, Owner


class OwnerLoginSerializer(serializers.Serializer):
    """
    Serializer for the owner password step
    """
    email = serializers.EmailField()
    accessCode = serializers.CharField(source='access_code', min_length=6, max_length=25)
    password = serializers.CharField(min_length=6, max_length=100, trim_whitespace=False)


class TwoFactorTokenSerializer(serializers.Serializer):
    token = serializers.CharField(
        min_length=6,
        max_length=6,
        help_text="6-digit code from the authenticator app"
    )

    def validate_token(self, value):
        if not value.isdigit():
            raise serializers.ValidationError("Token must contain only digits")
        return value


class TwoFactorLoginSerializer(TwoFactorTokenSerializer):
    challenge = serializers.CharField(help_text="Challenge returned by the password step")


class OwnerProfileSerializer(serializers.ModelSerializer):
    """
    Serializer for owner profile
    """
    totpEnabled = serializers.BooleanField(source='totp_enabled', read_only=True)
    lastLogin = serializers.DateTimeField(source='last_login', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Owner
        fields = ['id', 'email', 'name', 'totpEnabled', 'lastLogin', 'createdAt']
        read_only_fields = fields


class LoginSessionSerializer(serializers.ModelSerializer):
    isSuccessful = serializers.BooleanField(source='is_successful', read_only=True)
    loginAt = serializers.DateTimeField(source='login_at', read_only=True)
    ipAddress = serializers.CharField(source='ip_address', read_only=True)
    userAgent = serializers.CharField(source='user_agent', read_only=True)
    browserName = serializers.CharField(source='browser_name', read_only=True)
    browserVersion = serializers.CharField(source='browser_version', read_only=True)
    osName = serializers.CharField(source='os_name', read_only=True)
    osVersion = serializers.CharField(source='os_version', read_only=True)
    deviceType = serializers.CharField(source='device_type', read_only=True)
    deviceModel = serializers.CharField(source='device_model', read_only=True)
    countryCode = serializers.CharField(source='country_code', read_only=True)

    class Meta:
        model = LoginSession
        fields = [
            'id',
            'isSuccessful',
            'loginAt',
            'ipAddress',
            'userAgent',
            'browser',
            'browserName',
            'browserVersion',
            'os',
            'osName',
            'osVersion',
            'device',
            'deviceType',
            'deviceModel',
            'location',
            'country',
            'countryCode',
            'region',
            'city',
            'latitude',
            'longitude',
            'timezone',
            'isp',
        ]
        read_only_fields = fields
