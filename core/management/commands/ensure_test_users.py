# core/management/commands/ensure_test_users.py
from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand

from core.models import HealthcareFacility, User

TEST_SET = [
    ("super1", "super"),
    ("admin1", "admin"),
    ("doctor1", "doctor"),
    ("nurse1", "nurse"),
    ("analyst1", "analyst"),
]


class Command(BaseCommand):
    help = "Ensure one active test user per role exists (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="juanheart123")

    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        facility = HealthcareFacility.objects.filter(is_active=True).order_by("id").first()
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": password, "is_active": True, "status": "active",
                          "facility": facility if role != "super" else None},
            )
            if not created:
                u.password = password
                u.role = role
                u.is_active = True
                u.status = "active"
                u.save(update_fields=["password", "role", "is_active", "status"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
