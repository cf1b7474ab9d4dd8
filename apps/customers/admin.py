from django.contrib import admin

from .models import Customer, FormDraft


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('phone_number', 'first_name', 'last_name', 'email', 'discount_code', 'is_verified', 'created_at')
    list_filter = ('is_verified', 'is_phone_verified', 'is_email_verified', 'consent_email', 'consent_sms', 'country')
    search_fields = ('phone_number', 'email', 'first_name', 'last_name', 'discount_code')
    readonly_fields = ('id', 'discount_code', 'consent_given_at', 'created_at', 'updated_at')
    ordering = ('-created_at',)

    fieldsets = (
        ('Profile', {
            'fields': ('id', 'first_name', 'last_name', 'phone_number', 'email', 'country', 'birth_date')
        }),
        ('Address', {
            'fields': ('street', 'house_number', 'city', 'postal_code')
        }),
        ('Preferences', {
            'fields': ('preferred_food', 'feedback')
        }),
        ('Verification', {
            'fields': ('discount_code', 'is_phone_verified', 'is_email_verified', 'is_verified',
                       'phone_code_sent_at', 'email_code_sent_at')
        }),
        ('Consent', {
            'fields': ('consent_email', 'consent_sms', 'consent_given_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )


@admin.register(FormDraft)
class FormDraftAdmin(admin.ModelAdmin):
    list_display = ('id', 'first_name', 'last_name', 'phone_number', 'email', 'updated_at')
    search_fields = ('phone_number', 'email', 'first_name', 'last_name')
    readonly_fields = ('created_at', 'updated_at')
    ordering = ('-updated_at',)
