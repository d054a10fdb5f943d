from .exceptions import (
    PaymentErrorKind,
    PaymentError,
    WalletNotConfiguredError,
    ConfigurationError,
    InvalidPrivateKeyError,
    PaymentRequiredError,
    MalformedRequirementsError,
    ExpiredRequirementsError,
    RequirementsMismatchError,
    PaymentSigningError,
    DelegatePaymentError,
    PaymentRejectedError,
    UpstreamRequestError,
)

__all__ = [
    "PaymentErrorKind",
    "PaymentError",
    "WalletNotConfiguredError",
    "ConfigurationError",
    "InvalidPrivateKeyError",
    "PaymentRequiredError",
    "MalformedRequirementsError",
    "ExpiredRequirementsError",
    "RequirementsMismatchError",
    "PaymentSigningError",
    "DelegatePaymentError",
    "PaymentRejectedError",
    "UpstreamRequestError",
]
