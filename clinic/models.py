"""
Database models for the Maria Vita backend.

Users carry one of the five roles from :mod:`clinic.roles`.  Specialists,
appointments, lab study requests and contact messages hang off the user
model, and every significant action is recorded in :class:`ActivityLog`.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models

from .roles import Role


class UserManager(BaseUserManager):
    """Manager for the e-mail based user model."""
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('The email must be set')
        email = self.normalize_email(email).strip()
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', Role.SUPERADMIN)
        extra_fields.setdefault('is_new', False)
        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Clinic user identified by e-mail.

    ``is_new`` starts ``True`` and flips to ``False`` once, when the
    profile-completion workflow succeeds.  ``role`` is only changed through
    the user administration endpoints.
    """
    username = None
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.PATIENT, db_index=True)
    suffix = models.CharField(max_length=16, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    photo_url = models.URLField(max_length=512, blank=True)
    is_new = models.BooleanField(default=True)
    # "isAdmin" flag: may administer the system regardless of role
    can_admin = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS: list[str] = []

    objects = UserManager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class Specialist(models.Model):
    """Professional profile of a user with the SPECIALIST role."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='specialist')
    full_name = models.CharField(max_length=255)
    specialty = models.CharField(max_length=64, db_index=True)
    license_number = models.CharField(max_length=32, blank=True)
    assigned_office = models.CharField(max_length=64, blank=True)
    biography = models.TextField(blank=True)
    years_of_experience = models.PositiveIntegerField(null=True, blank=True)
    consultation_fee = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0'))
    photo_url = models.URLField(max_length=512, blank=True)
    is_available = models.BooleanField(default=True, db_index=True)
    courses = models.JSONField(default=list, blank=True)
    certifications = models.JSONField(default=list, blank=True)
    academic_formation = models.JSONField(default=list, blank=True)
    trajectory = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.full_name} ({self.specialty})"


class Appointment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no_show'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'Pendiente'),
        (STATUS_CONFIRMED, 'Confirmada'),
        (STATUS_IN_PROGRESS, 'En Curso'),
        (STATUS_COMPLETED, 'Completada'),
        (STATUS_CANCELLED, 'Cancelada'),
        (STATUS_NO_SHOW, 'No Asistió'),
    )
    TRANSITIONS = {
        STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
        STATUS_CONFIRMED: {STATUS_IN_PROGRESS, STATUS_CANCELLED, STATUS_NO_SHOW},
        STATUS_IN_PROGRESS: {STATUS_COMPLETED},
        STATUS_COMPLETED: set(),
        STATUS_CANCELLED: set(),
        STATUS_NO_SHOW: set(),
    }
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_IN_PROGRESS)

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='appointments')
    specialist = models.ForeignKey(Specialist, on_delete=models.CASCADE, related_name='appointments')
    scheduled_at = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(default=30)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    reason = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['scheduled_at']
        indexes = [
            models.Index(fields=['specialist', 'scheduled_at']),
            models.Index(fields=['patient', 'scheduled_at']),
        ]

    def __str__(self) -> str:
        return f"Cita {self.id} {self.scheduled_at:%F %H:%M} ({self.status})"


class StudyCatalogItem(models.Model):
    """A lab study that can be requested, with its current price."""
    CATEGORY_CHOICES = (
        ('hematologia', 'Hematología'),
        ('quimica_sanguinea', 'Química Sanguínea'),
        ('inmunologia', 'Inmunología'),
        ('microbiologia', 'Microbiología'),
        ('urologia', 'Urología'),
        ('hormonas', 'Perfil Hormonal'),
        ('cardiologia', 'Perfil Cardiológico'),
        ('imagenologia', 'Imagenología'),
        ('otros', 'Otros'),
    )
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES, default='otros')
    price = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ['category', 'name']

    def __str__(self) -> str:
        return self.name


class StudyRequest(models.Model):
    STATUS_DRAFT = 'draft'
    STATUS_PENDING_PAYMENT = 'pending_payment'
    STATUS_PAID = 'paid'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_DRAFT, 'Borrador'),
        (STATUS_PENDING_PAYMENT, 'Pendiente de Pago'),
        (STATUS_PAID, 'Pagada'),
        (STATUS_IN_PROGRESS, 'En Proceso'),
        (STATUS_COMPLETED, 'Completada'),
        (STATUS_CANCELLED, 'Cancelada'),
    )
    TRANSITIONS = {
        STATUS_DRAFT: {STATUS_PENDING_PAYMENT, STATUS_CANCELLED},
        STATUS_PENDING_PAYMENT: {STATUS_PAID, STATUS_CANCELLED},
        STATUS_PAID: {STATUS_IN_PROGRESS, STATUS_CANCELLED},
        STATUS_IN_PROGRESS: {STATUS_COMPLETED, STATUS_CANCELLED},
        STATUS_COMPLETED: set(),
        STATUS_CANCELLED: set(),
    }
    PAYMENT_METHOD_CHOICES = (
        ('cash', 'Efectivo'),
        ('credit_card', 'Tarjeta de Crédito'),
        ('debit_card', 'Tarjeta de Débito'),
        ('transfer', 'Transferencia'),
        ('insurance', 'Seguro Médico'),
    )

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='study_requests')
    referring_doctor = models.ForeignKey(
        Specialist, null=True, blank=True, on_delete=models.SET_NULL, related_name='study_requests'
    )
    # [{studyId, studyName, price, quantity}], prices frozen at request time
    studies = models.JSONField(default=list)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING_PAYMENT, db_index=True)
    payment_method = models.CharField(max_length=16, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    scheduled_date = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Solicitud {self.id} ({self.status})"


class ContactMessage(models.Model):
    """Message sent from the public site's contact form."""
    name = models.CharField(max_length=120)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True)
    subject = models.CharField(max_length=200)
    message = models.TextField()
    ip = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.subject} <{self.email}>"


class ActivityLog(models.Model):
    ACTION_CHOICES = (
        ('REGISTER', 'REGISTER'),
        ('LOGIN', 'LOGIN'),
        ('LOGOUT', 'LOGOUT'),
        ('CREATE', 'CREATE'),
        ('UPDATE', 'UPDATE'),
        ('DELETE', 'DELETE'),
        ('COMPLETE_PROFILE', 'COMPLETE_PROFILE'),
        ('STATUS_CHANGE', 'STATUS_CHANGE'),
    )
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='activity')
    user_email = models.CharField(max_length=254, blank=True)
    action = models.CharField(max_length=32, choices=ACTION_CHOICES)
    module = models.CharField(max_length=32)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    ip = models.GenericIPAddressField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['module', 'created_at']),
        ]

    def __str__(self):
        return f"{self.module}.{self.action}:{self.user_id}@{self.created_at:%F %T}"
