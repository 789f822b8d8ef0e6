from rest_framework import serializers
from .models import Notification, NotificationPreference, NotificationTemplate, CHANNEL_CHOICES


class NotificationSerializer(serializers.ModelSerializer):
    is_read = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = ['id', 'event', 'channel', 'title', 'message', 'data', 'status',
                  'sent_at', 'read_at', 'is_read', 'created_at']
        read_only_fields = fields

    def get_is_read(self, obj):
        return obj.read_at is not None


class NotificationPreferenceSerializer(serializers.ModelSerializer):
    channel = serializers.ChoiceField(choices=CHANNEL_CHOICES)

    class Meta:
        model = NotificationPreference
        fields = ['id', 'event', 'channel', 'enabled', 'updated_at']
        read_only_fields = ['id', 'updated_at']


class NotificationTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = NotificationTemplate
        fields = ['id', 'name', 'event', 'channel', 'subject', 'template', 'is_active',
                  'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']
