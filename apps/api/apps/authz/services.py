"""
Account registration.
"""
from django.db import IntegrityError, transaction

from apps.core.exceptions import ConflictError, ValidationError
from apps.core.observability.events import log_domain_event
from apps.patients.models import Patient
from .models import SELF_REGISTER_ROLES, RoleChoices, User


@transaction.atomic
def register_user(email, password, role, first_name='', last_name=''):
    """
    Create a user; patients also get their Patient profile.

    Raises:
        ValidationError: missing email/password or a role that cannot self-register
        ConflictError: email already registered
    """
    if not email or not password:
        raise ValidationError('Email and password are required')
    if role not in SELF_REGISTER_ROLES:
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(SELF_REGISTER_ROLES)}"
        )

    email = User.objects.normalize_email(email)
    if User.objects.filter(email__iexact=email).exists():
        raise ConflictError('User with this email already exists')

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            role=role,
            first_name=first_name,
            last_name=last_name,
        )
    except IntegrityError:
        raise ConflictError('User with this email already exists')

    if role == RoleChoices.PATIENT:
        Patient.objects.create(user=user, first_name=first_name, last_name=last_name)

    log_domain_event(
        'user_registered',
        entity_type='User',
        entity_id=str(user.id),
        role=role,
    )
    return user
