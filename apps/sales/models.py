import uuid

from django.db import models
from django.utils import timezone


class Sale(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    amount = models.DecimalField(max_digits=12, decimal_places=2, editable=False)
    # Plain column rather than a foreign key: deleting a customer must not touch its sales.
    customer_id = models.UUIDField(null=True, blank=True, editable=False)
    points_earned = models.PositiveIntegerField(default=0, editable=False)
    description = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    sequence = models.PositiveBigIntegerField(unique=True, editable=False)

    class Meta:
        ordering = ["sequence"]
        indexes = [
            models.Index(fields=["customer_id", "created_at"], name="sale_customer_created_idx"),
            models.Index(fields=["created_at"], name="sale_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name="sale_amount_gt_zero"),
        ]

    @property
    def is_anonymous(self):
        return self.customer_id is None

    def __str__(self):
        return f"{self.amount} ({self.points_earned} pts)"
