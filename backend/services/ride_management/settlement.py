"""
Ride payment settlement.

Both settlement paths (wallet at completion and manual confirmation later)
funnel through ``apply_payment``, and both only call it after winning the
one-shot ``payment_status`` pending -> completed update. That update is what
keeps driver earnings from ever being applied twice.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F

from common.conf import driver_share
from common.utils.money import round_half_up, to_decimal
from drivers import services as driver_services
from rides.models import Ride
from services import ledger
from services.exceptions import InsufficientFundsError, InvalidTransitionError
from services.fares import calculate_wallet_discount
from services.payments import PaymentMethod
from . import registry

User = get_user_model()
logger = logging.getLogger(__name__)


@dataclass
class SettlementOutcome:
    settled: bool
    method: str
    amount_paid: Decimal = Decimal("0")
    driver_earnings: Decimal = Decimal("0")
    wallet_balance: Optional[Decimal] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def driver_earnings_for(total_fare) -> Decimal:
    return round_half_up(to_decimal(total_fare) * driver_share())


def apply_payment(ride: Ride, amount_paid, count_ride: bool) -> Decimal:
    """
    Earnings and rider spend for one paid ride.

    Callers must already hold the payment transition for ``ride``.
    """
    earnings = driver_earnings_for(ride.total_fare)
    driver_services.record_ride_earnings(ride.driver, earnings, ride.duration or 0)

    rider_updates = {"total_spent": F("total_spent") + to_decimal(amount_paid)}
    if count_ride:
        rider_updates["total_rides"] = F("total_rides") + 1
    User.objects.filter(pk=ride.rider_id).update(**rider_updates)
    return earnings


def settle_completed_ride(ride: Ride) -> SettlementOutcome:
    """
    Settlement at ride completion.

    Wallet-linked rides are debited in full inside a savepoint. If the wallet
    cannot cover the fare the savepoint is rolled back and the ride is
    demoted to manual payment; the ride itself stays completed.
    """
    if ride.wallet_linked:
        try:
            with transaction.atomic():
                if not registry.mark_payment_completed(ride.id, PaymentMethod.WALLET):
                    raise InvalidTransitionError("Ride payment is already settled")
                balance = ledger.debit(
                    ride.rider,
                    ride.total_fare,
                    f"Ride payment #{ride.id}: {ride.pickup} to {ride.destination}",
                    method="ride_payment",
                )
                earnings = apply_payment(ride, ride.total_fare, count_ride=True)
        except InsufficientFundsError as e:
            logger.info("Ride %s: wallet cannot cover %s, payment deferred", ride.id, ride.total_fare)
            Ride.objects.filter(pk=ride.id).update(payment_status="pending", wallet_linked=False)
            User.objects.filter(pk=ride.rider_id).update(total_rides=F("total_rides") + 1)
            return SettlementOutcome(settled=False, method=ride.payment_method, extra={
                "reason": "insufficient_funds",
                **e.details,
            })

        return SettlementOutcome(
            settled=True,
            method=PaymentMethod.WALLET,
            amount_paid=ride.total_fare,
            driver_earnings=earnings,
            wallet_balance=balance,
        )

    User.objects.filter(pk=ride.rider_id).update(total_rides=F("total_rides") + 1)
    return SettlementOutcome(settled=False, method=ride.payment_method)


def settle_manual_payment(ride: Ride, method: str, transaction_id: Optional[str]) -> SettlementOutcome:
    """
    Record a payment made after completion.

    Wallet payments get the wallet discount and are debited here; gateway
    methods must already have been charged by the caller. Everything happens
    in one transaction, so a failed debit leaves the ride untouched.
    """
    amount = ride.total_fare
    extra = {}
    balance = None

    with transaction.atomic():
        if not registry.mark_payment_completed(ride.id, method, payment_id=transaction_id):
            raise InvalidTransitionError("Ride payment is already settled or the ride is not completed")

        if method == PaymentMethod.WALLET:
            discount = calculate_wallet_discount(ride.total_fare)
            amount = discount["final_amount"]
            extra["discount"] = discount["discount"]
            balance = ledger.debit(
                ride.rider,
                amount,
                f"Ride payment #{ride.id} ({discount['discount_percentage']}% discount applied)",
                method="ride_payment",
            )

        earnings = apply_payment(ride, amount, count_ride=False)

    return SettlementOutcome(
        settled=True,
        method=method,
        amount_paid=amount,
        driver_earnings=earnings,
        wallet_balance=balance,
        extra=extra,
    )
