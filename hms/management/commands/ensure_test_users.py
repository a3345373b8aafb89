from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password

from hms.models import Hospital, User

TEST_HOSPITAL = {"code": "DEMO", "name": "Demo Hospital"}

TEST_SET = [
    ("super", "super_admin"),
    ("admin1", "admin"),
    ("reception1", "receptionist"),
    ("doctor1", "doctor"),
]


class Command(BaseCommand):
    help = "Ensure the demo hospital and test users exist with password=123456 (idempotent)."

    def handle(self, *args, **opts):
        hospital, _ = Hospital.objects.get_or_create(code=TEST_HOSPITAL["code"], defaults={"name": TEST_HOSPITAL["name"]})
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={
                    "role": role,
                    "email": f"{username}@example.com",
                    "password": make_password("123456"),
                    "is_active": True,
                    "active_hospital": hospital,
                },
            )
            if not created:
                # reset password, role and activation
                u.password = make_password("123456")
                u.role = role
                u.is_active = True
                u.active_hospital = hospital
                u.save(update_fields=["password", "role", "is_active", "active_hospital"])
            u.hospitals.add(hospital)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role}) @ {hospital.code}"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
