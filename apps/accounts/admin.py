from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import LoginSession, Owner


@admin.register(Owner)
class OwnerAdmin(BaseUserAdmin):
    list_display = ('email', 'name', 'totp_enabled', 'is_active', 'last_login', 'created_at')
    list_filter = ('totp_enabled', 'is_active', 'is_staff')
    search_fields = ('email', 'name')
    ordering = ('-created_at',)

    fieldsets = (
        (None, {'fields': ('email', 'name', 'password')}),
        ('Two-factor', {'fields': ('totp_enabled',)}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser')}),
        ('Important dates', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2'),
        }),
    )

    readonly_fields = ('created_at', 'updated_at', 'last_login')


@admin.register(LoginSession)
class LoginSessionAdmin(admin.ModelAdmin):
    list_display = ('owner', 'is_successful', 'ip_address', 'browser', 'os', 'device_type', 'location', 'login_at')
    list_filter = ('is_successful', 'device_type', 'login_at')
    search_fields = ('ip_address', 'owner__email', 'city', 'country')
    ordering = ('-login_at',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
