from django.conf import settings
from django.db import models
from django.db.models import Q


class Wallet(models.Model):
    """Rider wallet. Balance is only ever changed through services.ledger."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='wallet'
    )
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'wallets'
        constraints = [
            models.CheckConstraint(condition=Q(balance__gte=0), name='wallet_balance_non_negative'),
        ]

    def __str__(self):
        return f"Wallet of {self.user} ({self.balance})"


class WalletTransaction(models.Model):
    """Append-only record of every balance mutation."""

    KIND_CHOICES = [
        ('credit', 'Credit'),
        ('debit', 'Debit'),
    ]

    METHOD_CHOICES = [
        ('wallet', 'Wallet'),
        ('razorpay', 'Razorpay'),
        ('phonepe', 'PhonePe'),
        ('ride_payment', 'Ride payment'),
    ]

    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.CASCADE,
        related_name='transactions'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    description = models.CharField(max_length=255)
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default='wallet')
    external_transaction_id = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'wallet_transactions'
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(condition=Q(amount__gt=0), name='wallet_transaction_amount_positive'),
        ]

    def __str__(self):
        return f"{self.kind} {self.amount} ({self.wallet.user})"
