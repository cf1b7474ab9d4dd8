from django.contrib import admin

from .models import BroadcastMessage, MessageDelivery, MessageSubscription


@admin.register(MessageSubscription)
class MessageSubscriptionAdmin(admin.ModelAdmin):
    list_display = ('customer', 'subscribed', 'created_at', 'updated_at')
    list_filter = ('subscribed',)
    search_fields = ('customer__phone_number', 'customer__email')
    readonly_fields = ('created_at', 'updated_at')


class MessageDeliveryInline(admin.TabularInline):
    model = MessageDelivery
    extra = 0
    fields = ('recipient', 'status', 'error_message', 'sent_at')
    readonly_fields = fields
    can_delete = False


@admin.register(BroadcastMessage)
class BroadcastMessageAdmin(admin.ModelAdmin):
    list_display = ('title', 'channel', 'created_at', 'sent_count', 'failed_count')
    list_filter = ('channel', 'created_at')
    search_fields = ('title', 'body')
    readonly_fields = ('created_at',)
    inlines = [MessageDeliveryInline]

    def sent_count(self, obj):
        return obj.deliveries.filter(status=MessageDelivery.STATUS_SENT).count()
    sent_count.short_description = 'Sent'

    def failed_count(self, obj):
        return obj.deliveries.filter(status=MessageDelivery.STATUS_FAILED).count()
    failed_count.short_description = 'Failed'


@admin.register(MessageDelivery)
class MessageDeliveryAdmin(admin.ModelAdmin):
    list_display = ('recipient', 'message', 'status', 'sent_at', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('recipient', 'error_message')
    readonly_fields = ('created_at',)
