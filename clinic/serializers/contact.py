import bleach
from rest_framework import serializers

from .auth import validate_phone_value


def plain_text(v):
    """Contact messages are stored as plain text: every tag is stripped."""
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class ContactSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=120)
    email = serializers.EmailField()
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    subject = serializers.CharField(min_length=3, max_length=200)
    message = serializers.CharField(min_length=10, max_length=5000)

    def validate_name(self, v):
        return plain_text(v)

    def validate_phone(self, v):
        return validate_phone_value(v)

    def validate_subject(self, v):
        return plain_text(v)

    def validate_message(self, v):
        v = plain_text(v)
        if len(v) < 10:
            raise serializers.ValidationError('El mensaje es demasiado corto')
        return v
