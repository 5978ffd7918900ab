"""Ledger operations on ``wallets.Wallet``."""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import F

from common.utils.money import to_decimal
from services.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    ServiceValidationError,
)
from wallets.models import Wallet, WalletTransaction

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _validate_amount(amount) -> Decimal:
    try:
        value = to_decimal(amount)
    except ValueError:
        raise ServiceValidationError("Amount must be a number")
    if not value.is_finite() or value <= 0:
        raise ServiceValidationError("Amount must be greater than zero")
    if value != value.quantize(CENT):
        raise ServiceValidationError("Amount must have at most two decimal places")
    return value


def _wallet_for(user) -> Wallet:
    try:
        return Wallet.objects.get(user_id=getattr(user, "pk", user))
    except Wallet.DoesNotExist:
        raise AccountNotFoundError("Wallet not found")


def get_or_create_wallet(user) -> Wallet:
    """Riders registered before wallets existed get an empty one on first use."""
    wallet, created = Wallet.objects.get_or_create(user=user)
    if created:
        logger.info("Created wallet for user %s", user.pk)
    return wallet


def credit(
    user,
    amount,
    method: str = "wallet",
    external_transaction_id: Optional[str] = None,
    description: str = "Added money to wallet",
) -> Decimal:
    """Add ``amount`` to the wallet and return the new balance."""
    value = _validate_amount(amount)

    with transaction.atomic():
        wallet = _wallet_for(user)
        Wallet.objects.filter(pk=wallet.pk).update(balance=F("balance") + value)
        WalletTransaction.objects.create(
            wallet=wallet,
            amount=value,
            kind="credit",
            description=description,
            payment_method=method,
            external_transaction_id=external_transaction_id,
        )
        balance = Wallet.objects.values_list("balance", flat=True).get(pk=wallet.pk)

    logger.info("Wallet %s credited %s via %s", wallet.pk, value, method)
    return balance


def debit(user, amount, description: str, method: str = "wallet") -> Decimal:
    """
    Take ``amount`` from the wallet and return the new balance.

    The sufficiency check and the decrement are one conditional UPDATE, so
    concurrent debits can never take the balance below zero.
    """
    value = _validate_amount(amount)

    with transaction.atomic():
        wallet = _wallet_for(user)
        updated = Wallet.objects.filter(
            pk=wallet.pk, balance__gte=value
        ).update(balance=F("balance") - value)

        if not updated:
            current = Wallet.objects.values_list("balance", flat=True).get(pk=wallet.pk)
            raise InsufficientFundsError(
                details={"balance": str(current), "required": str(value)}
            )

        WalletTransaction.objects.create(
            wallet=wallet,
            amount=value,
            kind="debit",
            description=description,
            payment_method=method,
        )
        balance = Wallet.objects.values_list("balance", flat=True).get(pk=wallet.pk)

    logger.info("Wallet %s debited %s (%s)", wallet.pk, value, description)
    return balance


def get_summary(user, limit: int = 20) -> Dict[str, Any]:
    """Balance plus the most recent transactions, newest first."""
    wallet = _wallet_for(user)
    transactions = list(wallet.transactions.all()[:limit])
    return {
        "balance": wallet.balance,
        "transactions": transactions,
    }
