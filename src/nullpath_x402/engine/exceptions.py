"""
Exception and Error Definitions Module

Defines the closed error taxonomy of the payment flow. Every error raised by
the library is a ``PaymentError`` whose ``kind`` is one of the
``PaymentErrorKind`` members, so callers can handle each case exhaustively
instead of matching on message text.

Exception Hierarchy:
    PaymentError (root)
    ├── WalletNotConfiguredError        not_configured
    ├── InvalidPrivateKeyError          invalid_secret
    ├── PaymentRequiredError
    │   ├── MalformedRequirementsError  malformed_requirements
    │   └── ExpiredRequirementsError    expired_requirements
    ├── RequirementsMismatchError       mismatch
    ├── PaymentSigningError             signing_failed
    ├── DelegatePaymentError            delegate_failed
    ├── PaymentRejectedError            rejected
    ├── UpstreamRequestError            upstream_failed
    └── ConfigurationError              not_configured

No message produced here ever contains secret key material.
"""

from enum import Enum
from typing import Any, ClassVar, Optional


class PaymentErrorKind(str, Enum):
    """
    Enumeration of user-facing payment failure categories.

    Attributes:
        NOT_CONFIGURED: No usable payment backend
        INVALID_SECRET: Malformed key material
        MALFORMED_REQUIREMENTS: 402 payload unparsable or missing fields
        EXPIRED_REQUIREMENTS: validBefore already passed
        MISMATCH: Network/asset do not match the configured identity
        SIGNING_FAILED: Underlying cryptographic signing failed
        DELEGATE_FAILED: External delegate program failed
        REJECTED: Server answered 402 again after payment
        UPSTREAM_FAILED: Any other non-success after a payment attempt
    """
    NOT_CONFIGURED = "not_configured"
    INVALID_SECRET = "invalid_secret"
    MALFORMED_REQUIREMENTS = "malformed_requirements"
    EXPIRED_REQUIREMENTS = "expired_requirements"
    MISMATCH = "mismatch"
    SIGNING_FAILED = "signing_failed"
    DELEGATE_FAILED = "delegate_failed"
    REJECTED = "rejected"
    UPSTREAM_FAILED = "upstream_failed"


class PaymentError(Exception):
    """
    Root exception class for all payment-flow exceptions.

    Attributes:
        kind: Taxonomy member identifying the failure category
        message: Human-readable description (never contains secrets)
        hint: Optional actionable advice for the caller
    """

    kind: ClassVar[PaymentErrorKind]
    default_hint: ClassVar[Optional[str]] = None

    def __init__(self, message: str, *, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint if hint is not None else self.default_hint


class WalletNotConfiguredError(PaymentError):
    """
    Raised when a 402 is received but no payment backend can be used.

    This includes scenarios such as:
    - No local wallet key and no authenticated delegate
    - Delegate forced via environment but unavailable or unauthenticated
    """

    kind = PaymentErrorKind.NOT_CONFIGURED
    default_hint = (
        "Set NULLPATH_WALLET_KEY to a funded Base wallet key, "
        "or authenticate the awal CLI (npx awal@latest)."
    )

    def __init__(self, message: Optional[str] = None, *, hint: Optional[str] = None) -> None:
        super().__init__(
            message or "Wallet not configured. Set NULLPATH_WALLET_KEY environment variable with your private key.",
            hint=hint,
        )


class ConfigurationError(PaymentError):
    """Raised when an environment setting is present but invalid."""

    kind = PaymentErrorKind.NOT_CONFIGURED


class InvalidPrivateKeyError(PaymentError):
    """
    Raised when the configured private key is malformed.

    The reason describes the shape problem only (length, alphabet); the key
    itself is never echoed.
    """

    kind = PaymentErrorKind.INVALID_SECRET
    default_hint = "NULLPATH_WALLET_KEY must be 64 hexadecimal characters, optionally prefixed with 0x."

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid private key: {reason}")


class PaymentRequiredError(PaymentError):
    """
    Base exception for unusable payment requirements in a 402 response.

    Attributes:
        requirements: Parsed requirements, when parsing got that far
    """

    kind = PaymentErrorKind.MALFORMED_REQUIREMENTS

    def __init__(self, message: str, requirements: Any = None, *, hint: Optional[str] = None) -> None:
        super().__init__(message, hint=hint)
        self.requirements = requirements


class MalformedRequirementsError(PaymentRequiredError):
    """
    Raised when the payment-requirement header is missing or invalid.

    This includes scenarios such as:
    - Header absent on a 402 response
    - Invalid base64 or JSON
    - Missing recipient or amount
    - Non-integer or negative amounts and timestamps
    """

    kind = PaymentErrorKind.MALFORMED_REQUIREMENTS
    default_hint = "The server sent an unreadable X-PAYMENT-REQUIRED header; retry later or contact the provider."


class ExpiredRequirementsError(PaymentRequiredError):
    """
    Raised when the requirement's validity window has already closed.

    Only checked once the payload is structurally valid.
    """

    kind = PaymentErrorKind.EXPIRED_REQUIREMENTS
    default_hint = "Request the resource again to obtain fresh payment requirements."


class RequirementsMismatchError(PaymentError):
    """
    Raised when requirements target a network or asset the identity does not sign for.

    Raised before any signing call is made.
    """

    kind = PaymentErrorKind.MISMATCH
    default_hint = "Set NULLPATH_CHAIN_ID to the network requested by the server."


class PaymentSigningError(PaymentError):
    """
    Raised when producing the transfer authorization signature fails.

    Attributes:
        cause: The original exception (also chained as ``__cause__``)
    """

    kind = PaymentErrorKind.SIGNING_FAILED

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class DelegatePaymentError(PaymentError):
    """
    Raised when the delegate (awal) program fails without a usable error report.

    Attributes:
        cause: Underlying process failure, if any
        output_excerpt: Truncated standard output when it was not valid JSON
    """

    kind = PaymentErrorKind.DELEGATE_FAILED
    default_hint = "Check that `npx awal@latest status` reports an authenticated wallet."

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        output_excerpt: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.output_excerpt = output_excerpt


class PaymentRejectedError(PaymentError):
    """
    Raised when the server answers 402 again after a payment was attached.

    Attributes:
        requirements: Requirements the payment was built from (diagnostics)
        body: Response body text of the rejecting response
    """

    kind = PaymentErrorKind.REJECTED
    default_hint = "Check the wallet's USDC balance on the requested network."

    def __init__(self, message: str, requirements: Any = None, body: str = "") -> None:
        super().__init__(message)
        self.requirements = requirements
        self.body = body


class UpstreamRequestError(PaymentError):
    """
    Raised when the paid request fails with a non-402 error status.

    Attributes:
        status_code: HTTP status of the failed response
        body: Response body text
    """

    kind = PaymentErrorKind.UPSTREAM_FAILED

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
