import logging

from django.conf import settings
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import BroadcastMessage
from .serializers import BroadcastSerializer, TargetedBroadcastSerializer
from .services import BroadcastService
from .transports import TransportNotConfigured, get_mail_transport, get_sms_gateway

logger = logging.getLogger(__name__)

SUMMARY_RESPONSE = openapi.Response(
    description="Broadcast finished",
    schema=openapi.Schema(
        type=openapi.TYPE_OBJECT,
        properties={
            'message': openapi.Schema(type=openapi.TYPE_STRING),
            'summary': openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={
                    'sent': openapi.Schema(type=openapi.TYPE_INTEGER),
                    'failed': openapi.Schema(type=openapi.TYPE_INTEGER),
                    'skipped': openapi.Schema(type=openapi.TYPE_INTEGER),
                }
            ),
        }
    )
)


class BaseBroadcastView(APIView):
    """
    Shared request handling for the broadcast endpoints
    """
    permission_classes = [IsAuthenticated]
    serializer_class = BroadcastSerializer

    def run_broadcast(self, service, validated_data):
        raise NotImplementedError

    def post(self, request):
        serializer = self.serializer_class(data=request.data)

        if not serializer.is_valid():
            return Response(
                serializer.errors,
                status=status.HTTP_400_BAD_REQUEST
            )

        service = BroadcastService(sms_gateway=get_sms_gateway(), mail_transport=get_mail_transport())

        try:
            message, summary = self.run_broadcast(service, serializer.validated_data)
        except TransportNotConfigured as e:
            logger.error("Broadcast rejected: %s", e)
            return Response(
                {'error': str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        except Exception as e:
            logger.exception("Broadcast failed")
            return Response(
                {'error': 'Broadcast failed. Please try again later.', 'detail': str(e) if settings.DEBUG else None},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        if message is None:
            text = 'No recipients for this broadcast'
        else:
            text = 'Broadcast complete'

        return Response(
            {'message': text, 'summary': summary},
            status=status.HTTP_200_OK
        )


class SubscriberBroadcastView(BaseBroadcastView):
    """
    SMS broadcast to every subscribed customer
    """

    @swagger_auto_schema(
        operation_description="Send an SMS to every subscribed customer.",
        request_body=BroadcastSerializer,
        responses={
            200: SUMMARY_RESPONSE,
            400: openapi.Response(description="Invalid request"),
            401: openapi.Response(description="Authentication required"),
            500: openapi.Response(description="SMS gateway not configured"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Broadcast']
    )
    def post(self, request):
        return super().post(request)

    def run_broadcast(self, service, validated_data):
        return service.broadcast_to_subscribers(validated_data['title'], validated_data['body'])


class TargetedSmsBroadcastView(BaseBroadcastView):
    serializer_class = TargetedBroadcastSerializer
    channel = BroadcastMessage.CHANNEL_SMS

    @swagger_auto_schema(
        operation_description="Send an SMS to the selected customers.",
        request_body=TargetedBroadcastSerializer,
        responses={
            200: SUMMARY_RESPONSE,
            400: openapi.Response(description="Invalid request"),
            401: openapi.Response(description="Authentication required"),
            500: openapi.Response(description="SMS gateway not configured"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Broadcast']
    )
    def post(self, request):
        return super().post(request)

    def run_broadcast(self, service, validated_data):
        return service.broadcast_to_customers(
            self.channel,
            validated_data['title'],
            validated_data['body'],
            validated_data['recipient_ids']
        )


class TargetedEmailBroadcastView(TargetedSmsBroadcastView):
    channel = BroadcastMessage.CHANNEL_EMAIL

    @swagger_auto_schema(
        operation_description="Send an email to the selected customers.",
        request_body=TargetedBroadcastSerializer,
        responses={
            200: SUMMARY_RESPONSE,
            400: openapi.Response(description="Invalid request"),
            401: openapi.Response(description="Authentication required"),
            500: openapi.Response(description="Mail transport not configured"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Broadcast']
    )
    def post(self, request):
        return BaseBroadcastView.post(self, request)


class ConsentEmailBroadcastView(BaseBroadcastView):
    """
    Email broadcast to every verified customer who consented to email
    """

    @swagger_auto_schema(
        operation_description="Send an email to every verified customer with email consent.",
        request_body=BroadcastSerializer,
        responses={
            200: SUMMARY_RESPONSE,
            400: openapi.Response(description="Invalid request"),
            401: openapi.Response(description="Authentication required"),
            500: openapi.Response(description="Mail transport not configured"),
        },
        security=[{'Bearer': []}, {'OwnerToken': []}],
        tags=['Broadcast']
    )
    def post(self, request):
        return super().post(request)

    def run_broadcast(self, service, validated_data):
        return service.broadcast_email_to_consenting(validated_data['title'], validated_data['body'])
