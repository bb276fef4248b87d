from decimal import Decimal

from rest_framework import serializers

from .auth import (
    AcademicSerializer,
    CertificationSerializer,
    CourseSerializer,
    TrajectorySerializer,
    clean_text,
)

SPECIALTIES = (
    'Medicina General',
    'Cardiología',
    'Dermatología',
    'Endocrinología',
    'Gastroenterología',
    'Ginecología',
    'Medicina Interna',
    'Nefrología',
    'Neurología',
    'Oftalmología',
    'Ortopedia',
    'Otorrinolaringología',
    'Pediatría',
    'Psicología',
    'Psiquiatría',
    'Traumatología',
    'Urología',
)


class SpecialistSerializer(serializers.Serializer):
    """Create/update payload for a specialist profile.

    On create ``userId`` must point at a SPECIALIST user without a profile.
    """
    userId = serializers.IntegerField(required=False)
    fullName = serializers.CharField(max_length=255)
    specialty = serializers.CharField(max_length=64)
    licenseNumber = serializers.RegexField(r'^[0-9]{7,10}$', required=False, allow_blank=True)
    assignedOffice = serializers.CharField(required=False, allow_blank=True, max_length=64)
    biography = serializers.CharField(required=False, allow_blank=True, max_length=5000)
    yearsOfExperience = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=80)
    consultationFee = serializers.DecimalField(required=False, max_digits=8, decimal_places=2,
                                               min_value=Decimal('0'), max_value=Decimal('10000'))
    photoUrl = serializers.URLField(required=False, allow_blank=True, max_length=512)
    isAvailable = serializers.BooleanField(required=False)
    courses = CourseSerializer(many=True, required=False)
    certifications = CertificationSerializer(many=True, required=False)
    academicFormation = AcademicSerializer(many=True, required=False)
    trajectory = TrajectorySerializer(many=True, required=False)

    def validate_fullName(self, v):
        return clean_text(v)

    def validate_biography(self, v):
        return clean_text(v)
