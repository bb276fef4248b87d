from django.conf import settings
from rest_framework import serializers

from clinic.models import StudyRequest

from .auth import clean_text


class StudyItemSerializer(serializers.Serializer):
    studyId = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(required=False, default=1, min_value=1, max_value=10)


class StudyRequestCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(required=False)
    referringDoctorId = serializers.IntegerField(required=False, allow_null=True)
    studies = StudyItemSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_studies(self, v):
        if not v:
            raise serializers.ValidationError('Debe seleccionar al menos un estudio')
        if len(v) > settings.MAX_STUDIES_PER_REQUEST:
            raise serializers.ValidationError(
                f'No se pueden solicitar más de {settings.MAX_STUDIES_PER_REQUEST} estudios'
            )
        return v

    def validate_notes(self, v):
        return clean_text(v)


class StudyRequestStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=StudyRequest.STATUS_CHOICES)
    paymentMethod = serializers.ChoiceField(choices=StudyRequest.PAYMENT_METHOD_CHOICES, required=False)
    scheduledDate = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_notes(self, v):
        return clean_text(v)

    def validate(self, attrs):
        if attrs['status'] == StudyRequest.STATUS_PAID and not attrs.get('paymentMethod'):
            raise serializers.ValidationError({'paymentMethod': 'Debe indicar el método de pago'})
        return attrs
