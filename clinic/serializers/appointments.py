from django.conf import settings
from rest_framework import serializers

from clinic.models import Appointment

from .auth import clean_text


class AppointmentCreateSerializer(serializers.Serializer):
    specialistId = serializers.IntegerField()
    # Only honoured for callers holding manage_appointments
    patientId = serializers.IntegerField(required=False)
    scheduledAt = serializers.DateTimeField()
    durationMinutes = serializers.IntegerField(required=False, default=30)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_durationMinutes(self, v):
        lo = settings.MIN_APPOINTMENT_DURATION
        hi = settings.MAX_APPOINTMENT_DURATION
        if v < lo or v > hi:
            raise serializers.ValidationError(f'La duración debe estar entre {lo} y {hi} minutos')
        return v

    def validate_reason(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Appointment.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_notes(self, v):
        return clean_text(v)
