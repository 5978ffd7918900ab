from .gateways import PaymentMethod, ChargeResult, charge, register_gateway

__all__ = [
    "PaymentMethod",
    "ChargeResult",
    "charge",
    "register_gateway",
]
