"""
Core models: audit_log
"""
import uuid

from django.conf import settings
from django.db import models


class AuditLog(models.Model):
    """
    Append-only record of marketplace mutations.

    Written inside the same transaction as the mutation it describes, so a
    rolled-back operation leaves no audit row.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_entries'
    )
    action = models.CharField(max_length=64)
    entity_type = models.CharField(max_length=64)
    entity_id = models.UUIDField()
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_log'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='idx_audit_entity'),
            models.Index(fields=['action', 'created_at'], name='idx_audit_action_created'),
        ]

    def __str__(self):
        return f"{self.action} {self.entity_type}:{self.entity_id}"


def record_audit(actor_id, action, entity, details=None):
    """Append an audit entry for ``entity`` (any model instance with a UUID pk)."""
    return AuditLog.objects.create(
        actor_id=actor_id,
        action=action,
        entity_type=entity.__class__.__name__,
        entity_id=entity.pk,
        details=details or {},
    )
