# billing/management/commands/ensure_test_users.py
from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from rest_framework.authtoken.models import Token

from billing.models import User

TEST_SET = [
    ("billing1", "billing"),
    ("admin1", "admin"),
    ("doctor1", "doctor"),
    ("reception1", "receptionist"),
    ("super", "super"),
]


class Command(BaseCommand):
    help = "Ensure one test user per billing role exists and print its API token (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="123456", help="password set on every test user")

    def handle(self, *args, **opts):
        password = opts["password"]
        for username, role in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": make_password(password), "is_active": True},
            )
            if not created:
                # reset password, role and active flag
                u.password = make_password(password)
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            token, _ = Token.objects.get_or_create(user=u)
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role}) token={token.key}"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
