from django.urls import path
from .views import (
    ConsentEmailBroadcastView,
    SubscriberBroadcastView,
    TargetedEmailBroadcastView,
    TargetedSmsBroadcastView,
)

app_name = 'messaging'

urlpatterns = [
    path('broadcast/', SubscriberBroadcastView.as_view(), name='broadcast'),
    path('owner/broadcast/sms/', TargetedSmsBroadcastView.as_view(), name='owner-broadcast-sms'),
    path('owner/broadcast/email/', TargetedEmailBroadcastView.as_view(), name='owner-broadcast-email'),
    path('admin/broadcast/email/', ConsentEmailBroadcastView.as_view(), name='admin-broadcast-email'),
]
