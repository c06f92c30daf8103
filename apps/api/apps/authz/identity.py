"""
Caller identity.

Every service function takes a ``Caller`` explicitly; views build it once
per request with ``resolve_caller``.
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from apps.core.exceptions import ForbiddenError
from .models import RoleChoices


@dataclass(frozen=True)
class Caller:
    user_id: UUID
    role: str
    patient_id: Optional[UUID] = None
    clinic_id: Optional[UUID] = None

    @property
    def is_patient(self):
        return self.role == RoleChoices.PATIENT

    @property
    def is_clinic_manager(self):
        return self.role == RoleChoices.CLINIC_MANAGER

    @property
    def is_clinic_staff(self):
        return self.role in (RoleChoices.CLINIC_MANAGER, RoleChoices.CLINIC_DOCTOR)

    def require_patient(self):
        """Return the caller's patient id or raise ForbiddenError."""
        if not self.is_patient:
            raise ForbiddenError('Only patients can perform this action')
        if self.patient_id is None:
            raise ForbiddenError('Patient profile not found')
        return self.patient_id

    def require_clinic(self, manager_only=False):
        """Return the caller's clinic id or raise ForbiddenError."""
        if manager_only and not self.is_clinic_manager:
            raise ForbiddenError('Only clinic managers can perform this action')
        if not self.is_clinic_staff:
            raise ForbiddenError('Only clinic staff can perform this action')
        if self.clinic_id is None:
            raise ForbiddenError('Clinic profile not found')
        return self.clinic_id


def resolve_caller(user):
    """Build a Caller from an authenticated user, looking up its profile ids."""
    # Profile apps depend on authz, so import them lazily
    from apps.clinics.models import ClinicMember
    from apps.patients.models import Patient

    patient_id = None
    clinic_id = None

    if user.role == RoleChoices.PATIENT:
        patient_id = Patient.objects.filter(user_id=user.id).values_list('id', flat=True).first()
    elif user.role in (RoleChoices.CLINIC_MANAGER, RoleChoices.CLINIC_DOCTOR):
        clinic_id = ClinicMember.objects.filter(user_id=user.id).values_list('clinic_id', flat=True).first()

    return Caller(user_id=user.id, role=user.role, patient_id=patient_id, clinic_id=clinic_id)


class CallerMixin:
    """DRF view mixin exposing ``self.caller`` for the authenticated request user."""

    @property
    def caller(self):
        cached = getattr(self, '_caller', None)
        if cached is None:
            from apps.core.observability.correlation import bind_user

            bind_user(self.request.user)
            cached = self._caller = resolve_caller(self.request.user)
        return cached
