"""
Django admin registrations for the clinic models.

Gives superusers a ``/admin/`` view over users, specialists, bookings,
study requests, contact messages and the activity log.
"""

from django.contrib import admin

from .models import (
    ActivityLog,
    Appointment,
    ContactMessage,
    Specialist,
    StudyCatalogItem,
    StudyRequest,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'is_active', 'is_new', 'created_at')
    list_filter = ('role', 'is_active', 'is_new')
    search_fields = ('email', 'first_name', 'last_name', 'phone')
    ordering = ('-created_at',)
    exclude = ('password',)


@admin.register(Specialist)
class SpecialistAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'specialty', 'license_number', 'assigned_office', 'is_available')
    list_filter = ('specialty', 'is_available')
    search_fields = ('full_name', 'user__email', 'license_number')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'specialist', 'scheduled_at', 'duration_minutes', 'status')
    list_filter = ('status', 'specialist')
    search_fields = ('patient__email', 'specialist__full_name')
    date_hierarchy = 'scheduled_at'


@admin.register(StudyCatalogItem)
class StudyCatalogItemAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('name',)


@admin.register(StudyRequest)
class StudyRequestAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'total_amount', 'status', 'payment_method', 'created_at')
    list_filter = ('status', 'payment_method')
    search_fields = ('patient__email',)


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    list_display = ('subject', 'name', 'email', 'created_at')
    search_fields = ('subject', 'name', 'email')


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'user_email', 'module', 'action', 'object_type', 'object_id', 'ip')
    list_filter = ('module', 'action')
    search_fields = ('user_email', 'object_id')
    readonly_fields = [f.name for f in ActivityLog._meta.fields]
