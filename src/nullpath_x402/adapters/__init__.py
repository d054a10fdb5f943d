from .backends import PaymentBackendConfig, select_payment_backend

__all__ = [
    "PaymentBackendConfig",
    "select_payment_backend",
]
