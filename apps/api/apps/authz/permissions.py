"""
Role-based permission classes.

Role mismatch is a 403; ownership is checked by the services and reported
as not found.
"""
from rest_framework import permissions
from apps.authz.models import RoleChoices


class HasRole(permissions.BasePermission):
    """Allow authenticated users whose role is in ``allowed_roles``."""

    allowed_roles = ()

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.role in self.allowed_roles


class IsPatient(HasRole):
    allowed_roles = (RoleChoices.PATIENT,)


class IsClinicStaff(HasRole):
    allowed_roles = (RoleChoices.CLINIC_MANAGER, RoleChoices.CLINIC_DOCTOR)


class IsClinicManager(HasRole):
    allowed_roles = (RoleChoices.CLINIC_MANAGER,)


class IsPatientOrClinicStaff(HasRole):
    allowed_roles = (RoleChoices.PATIENT, RoleChoices.CLINIC_MANAGER, RoleChoices.CLINIC_DOCTOR)


class ClinicStaffReadManagerWrite(permissions.BasePermission):
    """
    Clinic doctors may read; writes need a clinic manager.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if request.method in permissions.SAFE_METHODS:
            return request.user.role in IsClinicStaff.allowed_roles
        return request.user.role == RoleChoices.CLINIC_MANAGER
