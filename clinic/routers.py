"""
URL mappings for the Maria Vita API.

Paths carry no trailing slash, matching what the front-end calls.
"""
from django.urls import include, path

from .auth_views import (
    complete_profile_view,
    jwt_logout_view,
    jwt_refresh_view,
    login_view,
    me_view,
    register_view,
)
from .views import health
from .views.appointments import appointment_detail_view, appointment_status_view, appointments_view
from .views.contact import contact_send_view
from .views.dashboard import admin_overview, dashboard_modules
from .views.specialists import specialist_detail_view, specialists_view, specialties_view
from .views.studies import (
    study_catalog_view,
    study_request_cancel_view,
    study_request_detail_view,
    study_request_status_view,
    study_requests_view,
)
from .views.users import user_detail_view, users_view

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),

    # Authentication
    path('api/auth/register', register_view),
    path('api/auth/login', login_view),
    path('api/auth/me', me_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/auth/logout', jwt_logout_view),
    path('api/auth/complete-profile', complete_profile_view),

    # Dashboard
    path('api/dashboard/modules', dashboard_modules),
    path('api/dashboard/overview', admin_overview),

    # User administration
    path('api/users', users_view),
    path('api/users/<int:pk>', user_detail_view),

    # Specialists
    path('api/specialists', specialists_view),
    path('api/specialists/<int:pk>', specialist_detail_view),
    path('api/specialties', specialties_view),

    # Appointments
    path('api/appointments', appointments_view),
    path('api/appointments/<int:pk>', appointment_detail_view),
    path('api/appointments/<int:pk>/status', appointment_status_view),

    # Lab studies
    path('api/study-catalog', study_catalog_view),
    path('api/study-requests', study_requests_view),
    path('api/study-requests/<int:pk>', study_request_detail_view),
    path('api/study-requests/<int:pk>/status', study_request_status_view),
    path('api/study-requests/<int:pk>/cancel', study_request_cancel_view),

    # Contact
    path('api/contact/send', contact_send_view),
]
