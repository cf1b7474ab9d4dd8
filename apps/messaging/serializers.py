from rest_framework import serializers


class BroadcastSerializer(serializers.Serializer):
    title = serializers.CharField(min_length=1, max_length=200)
    body = serializers.CharField(min_length=1)


class TargetedBroadcastSerializer(BroadcastSerializer):
    """
    Serializer for broadcasts to a hand-picked list of customers
    """
    recipientIds = serializers.ListField(
        source='recipient_ids',
        child=serializers.UUIDField(),
        min_length=1,
        help_text="Customer ids to send the message to"
    )
