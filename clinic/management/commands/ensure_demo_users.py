from django.core.management.base import BaseCommand

from clinic.models import Specialist, StudyCatalogItem, User
from clinic.roles import ADMIN_ROLES, Role

DEMO_USERS = [
    ("superadmin@mariavita.test", Role.SUPERADMIN, "Super", "Admin"),
    ("admin@mariavita.test", Role.ADMIN, "Ana", "Administradora"),
    ("especialista@mariavita.test", Role.SPECIALIST, "Sergio", "Especialista"),
    ("recepcion@mariavita.test", Role.RECEPTIONIST, "Rosa", "Recepción"),
    ("paciente@mariavita.test", Role.PATIENT, "Pablo", "Paciente"),
]

DEMO_STUDIES = [
    ("Biometría Hemática", "hematologia", "250.00"),
    ("Química Sanguínea 6 elementos", "quimica_sanguinea", "380.00"),
    ("Examen General de Orina", "urologia", "150.00"),
    ("Perfil Tiroideo", "hormonas", "620.00"),
]


class Command(BaseCommand):
    help = "Ensure one demo user per role and a small study catalogue exist (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="Demo123!", help="password set on every demo user")

    def handle(self, *args, **opts):
        password = opts["password"]
        for email, role, first, last in DEMO_USERS:
            u, created = User.objects.get_or_create(
                email=email,
                defaults={"role": role, "first_name": first, "last_name": last, "is_new": False},
            )
            u.role = role
            u.is_active = True
            u.can_admin = role in ADMIN_ROLES
            u.set_password(password)
            u.save()
            if role == Role.SPECIALIST:
                Specialist.objects.get_or_create(
                    user=u, defaults={"full_name": f"{first} {last}", "specialty": "Medicina General"},
                )
            self.stdout.write(self.style.SUCCESS(f"{'created' if created else 'ok'}: {email} ({role})"))

        for name, category, price in DEMO_STUDIES:
            StudyCatalogItem.objects.get_or_create(name=name, defaults={"category": category, "price": price})
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
