from rest_framework import serializers

from .models import Customer

BIRTH_DATE_FORMATS = ['iso-8601', '%Y-%m-%dT%H:%M:%S.%fZ', '%Y-%m-%dT%H:%M:%SZ']


class RegistrationSerializer(serializers.Serializer):
    """
    Serializer for the public registration form
    """
    firstName = serializers.CharField(source='first_name', min_length=1, max_length=100)
    lastName = serializers.CharField(source='last_name', min_length=1, max_length=100)
    country = serializers.CharField(min_length=2, max_length=2)
    phoneNumber = serializers.CharField(source='phone_number', min_length=6, max_length=20)
    email = serializers.EmailField(required=False, allow_null=True, allow_blank=True)
    birthDate = serializers.DateField(
        source='birth_date',
        required=False,
        allow_null=True,
        input_formats=BIRTH_DATE_FORMATS
    )
    city = serializers.CharField(required=False, allow_blank=True, max_length=100)
    street = serializers.CharField(required=False, allow_blank=True, max_length=200)
    postalCode = serializers.CharField(source='postal_code', required=False, allow_blank=True, max_length=20)
    houseNumber = serializers.CharField(source='house_number', required=False, allow_blank=True, max_length=20)
    preferredFood = serializers.CharField(source='preferred_food', required=False, allow_blank=True)
    feedback = serializers.CharField(required=False, allow_blank=True)
    consentEmail = serializers.BooleanField(source='consent_email', required=False, default=False)
    consentSms = serializers.BooleanField(source='consent_sms', required=False, default=False)
    draftId = serializers.UUIDField(source='draft_id', required=False, allow_null=True)

    def validate_country(self, value):
        """
        ISO 3166-1 alpha-2 code, stored uppercase
        """
        if not value.isalpha():
            raise serializers.ValidationError("Country must be a 2-letter code")
        return value.upper()

    def validate_phoneNumber(self, value):
        return value.strip()

    def validate_email(self, value):
        return value or None


class VerificationSendSerializer(serializers.Serializer):
    customerId = serializers.UUIDField(source='customer_id')
    type = serializers.ChoiceField(source='channel', choices=Customer.CHANNEL_CHOICES)


class VerificationConfirmSerializer(VerificationSendSerializer):
    code = serializers.CharField(min_length=4, max_length=4)

    def validate_code(self, value):
        if not value.isdigit():
            raise serializers.ValidationError("Code must be 4 digits")
        return value


class FormDraftSerializer(serializers.Serializer):
    """
    Serializer for autosaved form drafts; every field is optional
    """
    draftId = serializers.UUIDField(source='draft_id', required=False, allow_null=True)
    firstName = serializers.CharField(source='first_name', required=False, allow_blank=True, allow_null=True, max_length=100)
    lastName = serializers.CharField(source='last_name', required=False, allow_blank=True, allow_null=True, max_length=100)
    phoneNumber = serializers.CharField(source='phone_number', required=False, allow_blank=True, allow_null=True, max_length=20)
    email = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=254)
    country = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2)
    birthDate = serializers.CharField(source='birth_date', required=False, allow_blank=True, allow_null=True, max_length=32)
    city = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)
    street = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=200)
    postalCode = serializers.CharField(source='postal_code', required=False, allow_blank=True, allow_null=True, max_length=20)
    houseNumber = serializers.CharField(source='house_number', required=False, allow_blank=True, allow_null=True, max_length=20)
    preferredFood = serializers.CharField(source='preferred_food', required=False, allow_blank=True, allow_null=True)
    feedback = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CustomerSerializer(serializers.ModelSerializer):
    """
    Read-only customer representation for the admin panel
    """
    firstName = serializers.CharField(source='first_name', read_only=True)
    lastName = serializers.CharField(source='last_name', read_only=True)
    phoneNumber = serializers.CharField(source='phone_number', read_only=True)
    birthDate = serializers.DateField(source='birth_date', read_only=True)
    postalCode = serializers.CharField(source='postal_code', read_only=True)
    houseNumber = serializers.CharField(source='house_number', read_only=True)
    preferredFood = serializers.CharField(source='preferred_food', read_only=True)
    discountCode = serializers.CharField(source='discount_code', read_only=True)
    isVerified = serializers.BooleanField(source='is_verified', read_only=True)
    isPhoneVerified = serializers.BooleanField(source='is_phone_verified', read_only=True)
    isEmailVerified = serializers.BooleanField(source='is_email_verified', read_only=True)
    consentEmail = serializers.BooleanField(source='consent_email', read_only=True)
    consentSms = serializers.BooleanField(source='consent_sms', read_only=True)
    consentGivenAt = serializers.DateTimeField(source='consent_given_at', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Customer
        fields = [
            'id',
            'firstName',
            'lastName',
            'country',
            'phoneNumber',
            'email',
            'birthDate',
            'city',
            'street',
            'postalCode',
            'houseNumber',
            'preferredFood',
            'feedback',
            'discountCode',
            'isVerified',
            'isPhoneVerified',
            'isEmailVerified',
            'consentEmail',
            'consentSms',
            'consentGivenAt',
            'createdAt',
            'updatedAt',
        ]
        read_only_fields = fields
