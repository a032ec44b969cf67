from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from apps.payments.models import Payment, PaymentStatus, InvalidTransition
from apps.projects.models import Project

User = get_user_model()


class PaymentTransitionTest(TestCase):
    """Test cases for payment status transitions"""

    def setUp(self):
        self.owner = User.objects.create_user(username="owner")
        self.freelancer = User.objects.create_user(username="freelancer")
        self.project = Project.objects.create(title="Pay", description="x", owner=self.owner)
        self.payment = Payment.objects.create(
            project=self.project, payer=self.owner, recipient=self.freelancer, amount=Decimal("100.00")
        )

    def test_escrow_then_release(self):
        self.payment.transition(PaymentStatus.HELD_IN_ESCROW)
        self.payment.transition(PaymentStatus.RELEASED)

        self.assertEqual(self.payment.status, PaymentStatus.RELEASED)
        self.assertIsNotNone(self.payment.released_at)

    def test_refund_records_reason(self):
        self.payment.transition(PaymentStatus.REFUNDED, reason="Cancelled scope")

        self.assertIsNotNone(self.payment.refunded_at)
        self.assertEqual(self.payment.refund_reason, "Cancelled scope")

    def test_cannot_release_pending_payment(self):
        with self.assertRaises(InvalidTransition):
            self.payment.transition(PaymentStatus.RELEASED)

        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, PaymentStatus.PENDING)

    def test_released_is_final(self):
        self.payment.transition(PaymentStatus.HELD_IN_ESCROW)
        self.payment.transition(PaymentStatus.RELEASED)

        self.assertFalse(self.payment.can_transition(PaymentStatus.REFUNDED))
