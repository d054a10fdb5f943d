from .bases import CanonicalModel, VerificationStatus, VerificationResult
from .payments import PaymentRequirements, PaymentPayload, PaymentReceipt

__all__ = [
    "CanonicalModel",
    "VerificationStatus",
    "VerificationResult",
    "PaymentRequirements",
    "PaymentPayload",
    "PaymentReceipt",
]
