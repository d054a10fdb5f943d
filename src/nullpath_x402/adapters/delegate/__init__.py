from .awal import (
    DelegateStatus,
    DelegateStatusCache,
    DelegatePaymentResponse,
    check_delegate_status,
    is_delegate_available,
    is_delegate_forced,
    get_delegate_address,
    clear_delegate_cache,
    delegate_pay,
)

__all__ = [
    "DelegateStatus",
    "DelegateStatusCache",
    "DelegatePaymentResponse",
    "check_delegate_status",
    "is_delegate_available",
    "is_delegate_forced",
    "get_delegate_address",
    "clear_delegate_cache",
    "delegate_pay",
]
