import logging

from django.conf import settings
from django.http import HttpResponse
from django.utils import timezone
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.messaging.transports import (
    DeliveryError,
    TransportNotConfigured,
    get_mail_transport,
    get_sms_gateway,
)
from .models import Customer, FormDraft
from .serializers import (
    CustomerSerializer,
    FormDraftSerializer,
    RegistrationSerializer,
    VerificationConfirmSerializer,
    VerificationSendSerializer,
)
from .services import (
    ChannelUnavailable,
    CustomerExportService,
    CustomerNotFound,
    DiscountCodeGenerationError,
    FormDraftService,
    InvalidVerificationCode,
    RegistrationService,
    VerificationService,
)

logger = logging.getLogger(__name__)


def server_error_response(message, exc):
    return Response(
        {'error': message, 'detail': str(exc) if settings.DEBUG else None},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def verification_state(customer, reveal_discount_code=False):
    """
    Flags for the confirm response; the discount code is only included for
    the call that completed full verification
    """
    data = {
        'isPhoneVerified': customer.is_phone_verified,
        'isEmailVerified': customer.is_email_verified,
        'isFullyVerified': customer.is_verified,
    }
    if reveal_discount_code:
        data['discountCode'] = customer.discount_code
    return data


class RegisterView(APIView):
    """
    API endpoint for the public registration form

    A new customer is stored unverified; the discount code is only revealed
    once both phone and email are confirmed.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Register a customer. Existing phone numbers are answered with their current status.",
        request_body=RegistrationSerializer,
        responses={
            200: openapi.Response(
                description="Phone number already registered",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'status': openapi.Schema(type=openapi.TYPE_STRING, enum=['verified', 'pending_verification']),
                        'customerId': openapi.Schema(type=openapi.TYPE_STRING, format=openapi.FORMAT_UUID),
                        'discountCode': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                )
            ),
            202: openapi.Response(
                description="Customer created, verification required",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'status': openapi.Schema(type=openapi.TYPE_STRING, enum=['verification_required']),
                        'customerId': openapi.Schema(type=openapi.TYPE_STRING, format=openapi.FORMAT_UUID),
                    }
                )
            ),
            400: openapi.Response(description="Invalid form data"),
            500: openapi.Response(description="Server error"),
        },
        tags=['Registration']
    )
    def post(self, request):
        serializer = RegistrationSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        try:
            customer, registration_status = RegistrationService.register(serializer.validated_data)
        except DiscountCodeGenerationError as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        except Exception as e:
            logger.exception("Registration failed")
            return server_error_response('Registration failed. Please try again later.', e)

        if registration_status == RegistrationService.STATUS_VERIFIED:
            return Response(
                {
                    'message': 'Customer is already registered and verified',
                    'status': registration_status,
                    'discountCode': customer.discount_code,
                },
                status=status.HTTP_200_OK
            )

        if registration_status == RegistrationService.STATUS_PENDING:
            return Response(
                {
                    'message': 'Customer is already registered, verification pending',
                    'status': registration_status,
                    'customerId': str(customer.id),
                },
                status=status.HTTP_200_OK
            )

        return Response(
            {
                'message': 'Registration received, please verify your phone and email',
                'status': registration_status,
                'customerId': str(customer.id),
            },
            status=status.HTTP_202_ACCEPTED
        )


class SendVerificationCodeView(APIView):
    """
    API endpoint to send a 4-digit verification code by SMS or email
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Send a verification code to the customer's phone or email. The code is never returned.",
        request_body=VerificationSendSerializer,
        responses={
            200: openapi.Response(
                description="Code sent, or channel already verified",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'message': openapi.Schema(type=openapi.TYPE_STRING),
                        'alreadyVerified': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                    }
                )
            ),
            400: openapi.Response(description="Invalid request or no email on file"),
            404: openapi.Response(description="Customer not found"),
            500: openapi.Response(description="Transport not configured or delivery failed"),
        },
        tags=['Verification']
    )
    def post(self, request):
        serializer = VerificationSendSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        channel = serializer.validated_data['channel']
        service = VerificationService(get_sms_gateway(), get_mail_transport())

        try:
            sent = service.send_code(serializer.validated_data['customer_id'], channel)
        except CustomerNotFound:
            return Response(
                {'error': 'Customer not found'},
                status=status.HTTP_404_NOT_FOUND
            )
        except ChannelUnavailable as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )
        except TransportNotConfigured as e:
            logger.error("Cannot send %s verification code: %s", channel, e)
            return Response(
                {'error': str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        except DeliveryError as e:
            logger.error("Failed to deliver %s verification code: %s", channel, e)
            return server_error_response('Failed to send verification code. Please try again later.', e)
        except Exception as e:
            logger.exception("Verification send failed")
            return server_error_response('Failed to send verification code. Please try again later.', e)

        if not sent:
            return Response(
                {
                    'message': f'{channel.capitalize()} is already verified',
                    'alreadyVerified': True,
                },
                status=status.HTTP_200_OK
            )

        return Response(
            {
                'message': f'Verification code sent via {channel}',
                'alreadyVerified': False,
            },
            status=status.HTTP_200_OK
        )


class ConfirmVerificationCodeView(APIView):
    """
    API endpoint to confirm a verification code

    The response carries the discount code once both channels are verified.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Confirm a verification code for phone or email.",
        request_body=VerificationConfirmSerializer,
        responses={
            200: openapi.Response(
                description="Channel verified",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'message': openapi.Schema(type=openapi.TYPE_STRING),
                        'isPhoneVerified': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                        'isEmailVerified': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                        'isFullyVerified': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                        'discountCode': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                )
            ),
            400: openapi.Response(description="Invalid or expired verification code"),
            404: openapi.Response(description="Customer not found"),
        },
        tags=['Verification']
    )
    def post(self, request):
        serializer = VerificationConfirmSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        channel = serializer.validated_data['channel']
        service = VerificationService(get_sms_gateway(), get_mail_transport())

        try:
            customer, confirmed, became_verified = service.confirm_code(
                serializer.validated_data['customer_id'],
                channel,
                serializer.validated_data['code']
            )
        except CustomerNotFound:
            return Response(
                {'error': 'Customer not found'},
                status=status.HTTP_404_NOT_FOUND
            )
        except InvalidVerificationCode as e:
            return Response(
                {'error': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )
        except Exception as e:
            logger.exception("Verification confirm failed")
            return server_error_response('Verification failed. Please try again later.', e)

        if confirmed:
            message = f'{channel.capitalize()} verified successfully'
        else:
            message = f'{channel.capitalize()} is already verified'

        return Response(
            {'message': message, **verification_state(customer, reveal_discount_code=became_verified)},
            status=status.HTTP_200_OK
        )


class FormDraftView(APIView):
    """
    API endpoint for autosaving the registration form
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Create or update a form draft. Pass draftId to update an existing draft.",
        request_body=FormDraftSerializer,
        responses={
            200: openapi.Response(
                description="Draft saved",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                        'draftId': openapi.Schema(type=openapi.TYPE_STRING, format=openapi.FORMAT_UUID),
                    }
                )
            ),
            400: openapi.Response(description="Invalid draft data"),
            404: openapi.Response(description="Draft not found"),
        },
        tags=['Form drafts']
    )
    def post(self, request):
        serializer = FormDraftSerializer(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        data = dict(serializer.validated_data)
        draft_id = data.pop('draft_id', None)

        try:
            draft_id = FormDraftService.save_draft(data, draft_id=draft_id)
        except FormDraft.DoesNotExist:
            return Response(
                {'error': 'Draft not found'},
                status=status.HTTP_404_NOT_FOUND
            )

        return Response(
            {'success': True, 'draftId': str(draft_id)},
            status=status.HTTP_200_OK
        )


class FormDraftDetailView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Delete a form draft. Deleting a missing draft succeeds.",
        responses={
            200: openapi.Response(description="Draft deleted"),
        },
        tags=['Form drafts']
    )
    def delete(self, request, draft_id):
        FormDraftService.delete_draft(draft_id)
        return Response({'success': True}, status=status.HTTP_200_OK)


class CustomerListView(APIView):
    """
    API endpoint listing every customer for the admin panel
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="List all customers, newest first.",
        responses={
            200: openapi.Response(description="Customer list", schema=CustomerSerializer(many=True)),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Admin']
    )
    def get(self, request):
        customers = Customer.objects.order_by('-created_at')
        serializer = CustomerSerializer(customers, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


class FormDataSyncView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Customers flattened to strings for the admin table.",
        responses={
            200: openapi.Response(description="Flattened customer rows"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Admin']
    )
    def get(self, request):
        customers = Customer.objects.order_by('-created_at')
        rows = [CustomerExportService.form_data_row(customer) for customer in customers]
        return Response(rows, status=status.HTTP_200_OK)


class SubmissionListView(APIView):
    """
    API endpoint listing in-progress drafts followed by completed registrations
    """
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Drafts (status 'In progress') followed by customers (status 'Active').",
        responses={
            200: openapi.Response(description="Submission rows"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Admin']
    )
    def get(self, request):
        return Response(CustomerExportService.submission_rows(), status=status.HTTP_200_OK)


class CustomerCsvExportView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Download all customers as a CSV file.",
        responses={
            200: openapi.Response(description="CSV attachment"),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Admin']
    )
    def get(self, request):
        customers = Customer.objects.order_by('-created_at')
        content = CustomerExportService.export_csv(customers)

        filename = f"customers_{timezone.now():%Y-%m-%d}.csv"
        response = HttpResponse(content, content_type='text/csv; charset=utf-8')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response


class CustomerJsonExportView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Export all customers as JSON records.",
        responses={
            200: openapi.Response(
                description="Export payload",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'success': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                        'data': openapi.Schema(type=openapi.TYPE_ARRAY, items=openapi.Schema(type=openapi.TYPE_OBJECT)),
                        'total': openapi.Schema(type=openapi.TYPE_INTEGER),
                        'exportDate': openapi.Schema(type=openapi.TYPE_STRING, format=openapi.FORMAT_DATETIME),
                    }
                )
            ),
            401: openapi.Response(description="Authentication required"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Admin']
    )
    def get(self, request):
        customers = list(Customer.objects.order_by('-created_at'))
        return Response(
            {
                'success': True,
                'data': CustomerExportService.export_records(customers),
                'total': len(customers),
                'exportDate': timezone.now().isoformat(),
            },
            status=status.HTTP_200_OK
        )


class HealthView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Liveness check.",
        responses={200: openapi.Response(description="Service is up")},
        tags=['Health']
    )
    def get(self, request):
        return Response({'status': 'ok'}, status=status.HTTP_200_OK)
