from rest_framework import serializers

from core.models import Notification, NotificationPreference


class NotificationListQuerySerializer(serializers.Serializer):
    unread = serializers.BooleanField(required=False, default=False)
    type = serializers.ChoiceField(choices=Notification.TYPE_CHOICES, required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)


class PreferenceItemSerializer(serializers.Serializer):
    channel = serializers.ChoiceField(choices=NotificationPreference.CHANNEL_CHOICES)
    notification_type = serializers.ChoiceField(choices=Notification.TYPE_CHOICES)
    is_enabled = serializers.BooleanField()
    options = serializers.DictField(required=False)


class PreferencesSerializer(serializers.Serializer):
    preferences = PreferenceItemSerializer(many=True, allow_empty=False)
