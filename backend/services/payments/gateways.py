"""
Payment gateways.

Razorpay and PhonePe are simulated: they always succeed and hand back an id
in the provider's format. Offline methods (cash, upi, card, netbanking) are
recorded with a locally generated ``TXN`` id. ``wallet`` is settled through
the ledger and never reaches this module.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Optional

from django.db import models

from common.utils.money import to_decimal
from services.exceptions import ProviderError, ServiceValidationError

logger = logging.getLogger(__name__)


class PaymentMethod(models.TextChoices):
    WALLET = 'wallet', 'Wallet'
    RAZORPAY = 'razorpay', 'Razorpay'
    PHONEPE = 'phonepe', 'PhonePe'
    CASH = 'cash', 'Cash'
    UPI = 'upi', 'UPI'
    CARD = 'card', 'Card'
    NETBANKING = 'netbanking', 'Net banking'


@dataclass
class ChargeResult:
    success: bool
    transaction_id: Optional[str]
    method: str
    amount: Decimal
    message: str = ""


def _razorpay(amount: Decimal, details: dict) -> ChargeResult:
    return ChargeResult(True, f"rzp_{secrets.token_hex(16)}", PaymentMethod.RAZORPAY, amount)


def _phonepe(amount: Decimal, details: dict) -> ChargeResult:
    return ChargeResult(True, f"phonepe_{secrets.token_hex(16)}", PaymentMethod.PHONEPE, amount)


def _offline(method: str) -> Callable[[Decimal, dict], ChargeResult]:
    def gateway(amount: Decimal, details: dict) -> ChargeResult:
        txn_id = details.get("transaction_id") or f"TXN{int(time.time() * 1000)}{secrets.token_hex(3).upper()}"
        return ChargeResult(True, txn_id, method, amount)
    return gateway


_GATEWAYS: Dict[str, Callable[[Decimal, dict], ChargeResult]] = {
    PaymentMethod.RAZORPAY: _razorpay,
    PaymentMethod.PHONEPE: _phonepe,
    PaymentMethod.CASH: _offline(PaymentMethod.CASH),
    PaymentMethod.UPI: _offline(PaymentMethod.UPI),
    PaymentMethod.CARD: _offline(PaymentMethod.CARD),
    PaymentMethod.NETBANKING: _offline(PaymentMethod.NETBANKING),
}


def register_gateway(method: str, gateway: Callable[[Decimal, dict], ChargeResult]) -> None:
    """Swap in a real provider for ``method``."""
    _GATEWAYS[method] = gateway


def charge(method: str, amount, details: Optional[dict] = None) -> ChargeResult:
    """
    Charge ``amount`` through the gateway for ``method``.

    Must be called outside any transaction holding ride or wallet rows.
    Raises ProviderError when the gateway refuses or blows up.
    """
    gateway = _GATEWAYS.get(method)
    if gateway is None:
        raise ServiceValidationError(f"Unsupported payment method '{method}'")

    value = to_decimal(amount)
    try:
        result = gateway(value, details or {})
    except ProviderError:
        raise
    except Exception as e:
        logger.exception("Payment gateway %s failed", method)
        raise ProviderError(f"{method} payment failed") from e

    if not result.success:
        raise ProviderError(result.message or f"{method} payment failed")

    logger.info("Charged %s via %s (%s)", value, method, result.transaction_id)
    return result
