import re
from decimal import Decimal

import bleach
from rest_framework import serializers

from clinic.roles import Role

PHONE_RE = re.compile(r'^\+?[\d\s\-()]+$')
# 8+ chars with lower, upper, digit and one of !@#$%^&*
STRONG_PASSWORD_RE = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[!@#$%^&*])[A-Za-z\d!@#$%^&*]{8,}$')

SELF_REGISTER_ROLES = [(r.value, r.label) for r in (Role.ADMIN, Role.SPECIALIST, Role.PATIENT, Role.RECEPTIONIST)]


def clean_text(v):
    return bleach.clean((v or '').strip(), strip=True)


def validate_basic_password(v):
    if len(v) < 6:
        raise serializers.ValidationError('La contraseña debe tener al menos 6 caracteres')
    if not re.search(r'\d', v):
        raise serializers.ValidationError('La contraseña debe contener al menos un número')
    return v


def validate_phone_value(v):
    v = (v or '').strip()
    if v and not PHONE_RE.match(v):
        raise serializers.ValidationError('Teléfono no válido')
    return v


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_email(self, v):
        return v.strip().lower()


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False, write_only=True)
    firstName = serializers.CharField(min_length=2, max_length=100)
    lastName = serializers.CharField(min_length=2, max_length=100)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    role = serializers.ChoiceField(choices=SELF_REGISTER_ROLES, required=False, default=Role.PATIENT.value)

    def validate_email(self, v):
        return v.strip().lower()

    def validate_password(self, v):
        return validate_basic_password(v)

    def validate_firstName(self, v):
        return clean_text(v)

    def validate_lastName(self, v):
        return clean_text(v)

    def validate_phone(self, v):
        return validate_phone_value(v)


class ProfileUpdateSerializer(serializers.Serializer):
    firstName = serializers.CharField(required=False, min_length=2, max_length=100)
    lastName = serializers.CharField(required=False, min_length=2, max_length=100)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    currentPassword = serializers.CharField(required=False, trim_whitespace=False, write_only=True)
    newPassword = serializers.CharField(required=False, trim_whitespace=False, write_only=True)

    def validate_firstName(self, v):
        return clean_text(v)

    def validate_lastName(self, v):
        return clean_text(v)

    def validate_phone(self, v):
        return validate_phone_value(v)

    def validate_newPassword(self, v):
        return validate_basic_password(v)

    def validate(self, attrs):
        if attrs.get('newPassword') and not attrs.get('currentPassword'):
            raise serializers.ValidationError(
                {'currentPassword': 'Debes proporcionar la contraseña actual para cambiarla'}
            )
        return attrs


class CourseSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    institution = serializers.CharField(max_length=200)
    year = serializers.IntegerField(min_value=1900, max_value=2100)


class CertificationSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    issuer = serializers.CharField(max_length=200)
    year = serializers.IntegerField(min_value=1900, max_value=2100)


class AcademicSerializer(serializers.Serializer):
    degree = serializers.CharField(max_length=200)
    institution = serializers.CharField(max_length=200)
    year = serializers.IntegerField(min_value=1900, max_value=2100)


class TrajectorySerializer(serializers.Serializer):
    position = serializers.CharField(max_length=200)
    institution = serializers.CharField(max_length=200)
    startYear = serializers.IntegerField(min_value=1900, max_value=2100)
    endYear = serializers.IntegerField(min_value=1900, max_value=2100, required=False, allow_null=True)


class CompleteProfileSerializer(serializers.Serializer):
    """Final submission of the profile-completion wizard.

    Basic fields apply to every role; the professional block is only read
    for specialists.
    """
    suffix = serializers.CharField(required=False, allow_blank=True, max_length=16)
    firstName = serializers.CharField(min_length=1, max_length=100)
    lastName = serializers.CharField(min_length=1, max_length=100)
    dateOfBirth = serializers.DateField(required=False, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)
    photoUrl = serializers.URLField(required=False, allow_blank=True, max_length=512)
    newPassword = serializers.CharField(trim_whitespace=False, write_only=True)
    confirmPassword = serializers.CharField(trim_whitespace=False, write_only=True)

    specialty = serializers.CharField(required=False, allow_blank=True, max_length=64)
    licenseNumber = serializers.RegexField(r'^[0-9]{7,10}$', required=False, allow_blank=True)
    assignedOffice = serializers.CharField(required=False, allow_blank=True, max_length=64)
    biography = serializers.CharField(required=False, allow_blank=True, max_length=5000)
    yearsOfExperience = serializers.IntegerField(required=False, min_value=0, max_value=80)
    consultationFee = serializers.DecimalField(required=False, max_digits=8, decimal_places=2,
                                               min_value=Decimal('0'), max_value=Decimal('10000'))
    courses = CourseSerializer(many=True, required=False)
    certifications = CertificationSerializer(many=True, required=False)
    academicFormation = AcademicSerializer(many=True, required=False)
    trajectory = TrajectorySerializer(many=True, required=False)

    def validate_firstName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Por favor completa todos los campos requeridos')
        return v

    def validate_lastName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Por favor completa todos los campos requeridos')
        return v

    def validate_phone(self, v):
        return validate_phone_value(v)

    def validate_biography(self, v):
        return clean_text(v)

    def validate_newPassword(self, v):
        if not STRONG_PASSWORD_RE.match(v):
            raise serializers.ValidationError(
                'La contraseña debe tener al menos 8 caracteres, incluir mayúsculas, minúsculas, '
                'números y un carácter especial (!@#$%^&*)'
            )
        return v

    def validate(self, attrs):
        if attrs.get('newPassword') != attrs.get('confirmPassword'):
            raise serializers.ValidationError({'confirmPassword': 'Las contraseñas no coinciden'})
        return attrs
