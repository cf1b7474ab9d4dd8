from django.urls import path
from .views import (
    CurrentDeviceView,
    LoginSessionListView,
    OwnerLoginView,
    OwnerLogoutView,
    OwnerProfileView,
    OwnerRegisterView,
    RefreshTokenView,
    TwoFactorDisableView,
    TwoFactorLoginView,
    TwoFactorSetupView,
    TwoFactorVerifyView,
)

app_name = 'accounts'

urlpatterns = [
    path('owner/login/', OwnerLoginView.as_view(), name='owner-login'),
    path('owner/register/', OwnerRegisterView.as_view(), name='owner-register'),
    path('owner/profile/', OwnerProfileView.as_view(), name='owner-profile'),
    path('owner/login-sessions/', LoginSessionListView.as_view(), name='owner-login-sessions'),
    path('owner/current-device/', CurrentDeviceView.as_view(), name='owner-current-device'),
    path('owner/logout/', OwnerLogoutView.as_view(), name='owner-logout'),
    path('owner/refresh-token/', RefreshTokenView.as_view(), name='owner-refresh-token'),
    path('admin/2fa/setup/', TwoFactorSetupView.as_view(), name='2fa-setup'),
    path('admin/2fa/verify/', TwoFactorVerifyView.as_view(), name='2fa-verify'),
    path('admin/2fa/disable/', TwoFactorDisableView.as_view(), name='2fa-disable'),
    path('admin/2fa/login/', TwoFactorLoginView.as_view(), name='2fa-login'),
]
