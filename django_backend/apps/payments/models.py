from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    HELD_IN_ESCROW = "held_in_escrow", "Held in Escrow"
    RELEASED = "released", "Released"
    REFUNDED = "refunded", "Refunded"
    DISPUTED = "disputed", "Disputed"
    CANCELLED = "cancelled", "Cancelled"


class Currency(models.TextChoices):
    USD = "USD", "US Dollar"
    EUR = "EUR", "Euro"
    GBP = "GBP", "Pound Sterling"
    INR = "INR", "Indian Rupee"


ALLOWED_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.HELD_IN_ESCROW, PaymentStatus.REFUNDED, PaymentStatus.CANCELLED},
    PaymentStatus.HELD_IN_ESCROW: {PaymentStatus.RELEASED, PaymentStatus.REFUNDED},
    PaymentStatus.DISPUTED: {PaymentStatus.RELEASED, PaymentStatus.REFUNDED},
    PaymentStatus.RELEASED: set(),
    PaymentStatus.REFUNDED: set(),
    PaymentStatus.CANCELLED: set(),
}


class InvalidTransition(Exception):
    pass


class Payment(models.Model):
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="payments"
    )
    milestone = models.ForeignKey(
        "projects.Milestone",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="payments"
    )
    payer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments_made"
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments_received"
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.USD)
    status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    description = models.CharField(max_length=500, blank=True, default="")

    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["project", "status"]),
            models.Index(fields=["recipient", "status"]),
        ]
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.amount} {self.currency} -> {self.recipient_id} ({self.status})"

    def can_transition(self, new_status):
        return new_status in ALLOWED_TRANSITIONS.get(self.status, set())

    def transition(self, new_status, reason=""):
        if not self.can_transition(new_status):
            raise InvalidTransition(f"Cannot move a payment from {self.status} to {new_status}")

        self.status = new_status
        if new_status == PaymentStatus.RELEASED:
            self.released_at = timezone.now()
        elif new_status == PaymentStatus.REFUNDED:
            self.refunded_at = timezone.now()
            self.refund_reason = reason
        self.save()
        return self
