from django.db import models

from apps.customers.models import Customer


class MessageSubscription(models.Model):
    """
    Opt-in record for SMS broadcasts, created once a customer is fully verified
    """
    customer = models.OneToOneField(
        Customer,
        on_delete=models.CASCADE,
        related_name='subscription'
    )
    subscribed = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'message_subscriptions'
        verbose_name = 'Message subscription'
        verbose_name_plural = 'Message subscriptions'

    def __str__(self):
        state = 'subscribed' if self.subscribed else 'unsubscribed'
        return f"{self.customer.phone_number} ({state})"


class BroadcastMessage(models.Model):
    CHANNEL_SMS = 'sms'
    CHANNEL_EMAIL = 'email'
    CHANNEL_CHOICES = [
        (CHANNEL_SMS, 'SMS'),
        (CHANNEL_EMAIL, 'Email'),
    ]

    title = models.CharField(max_length=200)
    body = models.TextField()
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES, default=CHANNEL_SMS)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'broadcast_messages'
        verbose_name = 'Broadcast message'
        verbose_name_plural = 'Broadcast messages'
        ordering = ['-created_at']

    def __str__(self):
        return f"[{self.channel}] {self.title}"


class MessageDelivery(models.Model):
    """
    Outcome of sending one broadcast message to one recipient
    """
    STATUS_SENT = 'SENT'
    STATUS_FAILED = 'FAILED'
    STATUS_CHOICES = [
        (STATUS_SENT, 'Sent'),
        (STATUS_FAILED, 'Failed'),
    ]

    message = models.ForeignKey(
        BroadcastMessage,
        on_delete=models.CASCADE,
        related_name='deliveries'
    )
    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deliveries'
    )
    subscription = models.ForeignKey(
        MessageSubscription,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deliveries'
    )
    recipient = models.CharField(
        max_length=254,
        help_text="Phone number or email address the message was sent to"
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, db_index=True)
    error_message = models.TextField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'message_deliveries'
        verbose_name = 'Message delivery'
        verbose_name_plural = 'Message deliveries'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.recipient} - {self.status}"
