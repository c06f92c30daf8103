"""
Order models: order
"""
import uuid

from django.db import models


class OrderStatusChoices(models.TextChoices):
    NEW = 'new', 'New'
    CONSULTATION_SCHEDULED = 'consultation_scheduled', 'Consultation Scheduled'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class Order(models.Model):
    """
    Treatment order created by accepting an offer.

    One order per offer and per offer request. Only the winning clinic
    advances its status.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    offer = models.OneToOneField(
        'offers.Offer',
        on_delete=models.PROTECT,
        related_name='order'
    )
    offer_request = models.OneToOneField(
        'offers.OfferRequest',
        on_delete=models.PROTECT,
        related_name='order'
    )
    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    clinic = models.ForeignKey(
        'clinics.Clinic',
        on_delete=models.PROTECT,
        related_name='orders'
    )
    status = models.CharField(
        max_length=30,
        choices=OrderStatusChoices.choices,
        default=OrderStatusChoices.NEW,
        db_index=True
    )
    consultation_date = models.DateTimeField(null=True, blank=True)
    treatment_started_at = models.DateTimeField(null=True, blank=True)
    treatment_completed_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'order'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['clinic', 'status'], name='idx_order_clinic_status'),
            models.Index(fields=['patient', '-created_at'], name='idx_order_patient_created'),
        ]

    def __str__(self):
        return f"Order {self.id} ({self.status})"

    def get_valid_transitions(self):
        """
        Get valid status transitions from current status.

        Consultation cannot be skipped; completed and cancelled are terminal.
        """
        transitions = {
            OrderStatusChoices.NEW: [
                OrderStatusChoices.CONSULTATION_SCHEDULED,
                OrderStatusChoices.CANCELLED,
            ],
            OrderStatusChoices.CONSULTATION_SCHEDULED: [
                OrderStatusChoices.IN_PROGRESS,
                OrderStatusChoices.CANCELLED,
            ],
            OrderStatusChoices.IN_PROGRESS: [
                OrderStatusChoices.COMPLETED,
                OrderStatusChoices.CANCELLED,
            ],
            OrderStatusChoices.COMPLETED: [],
            OrderStatusChoices.CANCELLED: [],
        }
        return transitions.get(self.status, [])

    def can_transition_to(self, new_status):
        return new_status in self.get_valid_transitions()
