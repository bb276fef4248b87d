from rest_framework import serializers

from clinic.roles import Role

from .auth import clean_text, validate_basic_password, validate_phone_value

ROLE_CHOICES = [(r.value, r.label) for r in Role]


class UserCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    firstName = serializers.CharField(min_length=2, max_length=100)
    lastName = serializers.CharField(min_length=2, max_length=100)
    role = serializers.ChoiceField(choices=ROLE_CHOICES)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    suffix = serializers.CharField(required=False, allow_blank=True, max_length=16)
    tempPassword = serializers.CharField(required=False, trim_whitespace=False, write_only=True)

    def validate_email(self, v):
        return v.strip().lower()

    def validate_firstName(self, v):
        return clean_text(v)

    def validate_lastName(self, v):
        return clean_text(v)

    def validate_phone(self, v):
        return validate_phone_value(v)

    def validate_tempPassword(self, v):
        return validate_basic_password(v)


class UserUpdateSerializer(serializers.Serializer):
    """Administrative update. ``email`` is not accepted."""
    firstName = serializers.CharField(required=False, min_length=2, max_length=100)
    lastName = serializers.CharField(required=False, min_length=2, max_length=100)
    role = serializers.ChoiceField(choices=ROLE_CHOICES, required=False)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    suffix = serializers.CharField(required=False, allow_blank=True, max_length=16)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    isActive = serializers.BooleanField(required=False)

    def validate_firstName(self, v):
        return clean_text(v)

    def validate_lastName(self, v):
        return clean_text(v)

    def validate_phone(self, v):
        return validate_phone_value(v)
