from django.urls import path
from .views import (
    ConfirmVerificationCodeView,
    CustomerCsvExportView,
    CustomerJsonExportView,
    CustomerListView,
    FormDataSyncView,
    FormDraftDetailView,
    FormDraftView,
    HealthView,
    RegisterView,
    SendVerificationCodeView,
    SubmissionListView,
)

app_name = 'customers'

urlpatterns = [
    path('register/', RegisterView.as_view(), name='register'),
    path('verify/send/', SendVerificationCodeView.as_view(), name='verify-send'),
    path('verify/confirm/', ConfirmVerificationCodeView.as_view(), name='verify-confirm'),
    path('form-draft/', FormDraftView.as_view(), name='form-draft'),
    path('form-draft/<uuid:draft_id>/', FormDraftDetailView.as_view(), name='form-draft-detail'),
    path('customers/', CustomerListView.as_view(), name='customer-list'),
    path('sync/form-data/', FormDataSyncView.as_view(), name='form-data-sync'),
    path('submissions/', SubmissionListView.as_view(), name='submissions'),
    path('export/customers/', CustomerCsvExportView.as_view(), name='export-csv'),
    path('export/customers/json/', CustomerJsonExportView.as_view(), name='export-json'),
    path('health/', HealthView.as_view(), name='health'),
]
