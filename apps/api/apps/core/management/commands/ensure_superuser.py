"""
Create the operational admin account if missing (for Docker startup).
"""
import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Create the admin user if it does not exist (clinic approval is done in the Django admin)'

    def handle(self, *args, **options):
        User = get_user_model()

        email = os.environ.get('DJANGO_SUPERUSER_EMAIL', 'admin@example.com')
        password = os.environ.get('DJANGO_SUPERUSER_PASSWORD', 'admin123dev')

        if User.objects.filter(email=email).exists():
            self.stdout.write(self.style.WARNING(f'Admin "{email}" already exists'))
            return

        User.objects.create_superuser(email=email, password=password)
        self.stdout.write(self.style.SUCCESS(f'Admin "{email}" created successfully'))
