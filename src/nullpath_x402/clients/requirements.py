"""
402 Payment Requirements Parser

Decodes the ``X-PAYMENT-REQUIRED`` header of a 402 response into validated
``PaymentRequirements``.

Wire format (base64 of a JSON object):
    recipient | payee                 required
    amount | maxAmountRequired        required, integer or decimal string
    asset | usdcAddress               optional, defaults to the network's USDC
    network | chainId                 optional, defaults to Base mainnet
    validAfter                        optional, defaults to 0
    validBefore                       optional, defaults to now + 300

Validation order: structural decode, then missing fields, then expiry.
"""

import base64
import binascii
import json
import time
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

import httpx
from pydantic import ValidationError

from ..adapters.evm.constants import DEFAULT_VALIDITY_SECONDS, default_usdc_address, resolve_chain_id
from ..config import DEFAULT_CHAIN_ID
from ..engine.exceptions import ExpiredRequirementsError, MalformedRequirementsError
from ..schemas.payments import PaymentRequirements

PAYMENT_REQUIRED_HEADER = "X-PAYMENT-REQUIRED"
LEGACY_PAYMENT_REQUIRED_HEADER = "X-Payment-Required"
PAYMENT_REQUIRED_HEADERS = (PAYMENT_REQUIRED_HEADER, LEGACY_PAYMENT_REQUIRED_HEADER)

_MISSING = object()

MAX_UINT256 = 2 ** 256 - 1
_MAX_UINT256_DIGITS = len(str(MAX_UINT256))


def _first(data: Dict[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return _MISSING


def _to_int(value: Any, field: str) -> int:
    """Exact integer conversion; floats are refused so no precision is lost."""
    if isinstance(value, bool):
        raise MalformedRequirementsError(f"Invalid {field}: {value!r}")
    if isinstance(value, int):
        result = value
    elif isinstance(value, Decimal):
        if not value.is_finite() or value.adjusted() >= _MAX_UINT256_DIGITS:
            raise MalformedRequirementsError(f"Invalid {field}: exceeds uint256")
        if value != value.to_integral_value():
            raise MalformedRequirementsError(f"Invalid {field}: {value} is not an integer")
        result = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        text = value.strip().lstrip("0") or "0"
        if len(text) > _MAX_UINT256_DIGITS:
            raise MalformedRequirementsError(f"Invalid {field}: exceeds uint256")
        result = int(text)
    else:
        raise MalformedRequirementsError(f"Invalid {field}: {value!r}")

    if result < 0:
        raise MalformedRequirementsError(f"Invalid {field}: must be non-negative")
    if result > MAX_UINT256:
        raise MalformedRequirementsError(f"Invalid {field}: exceeds uint256")
    return result


def _read_header(response: httpx.Response) -> Optional[str]:
    for name in PAYMENT_REQUIRED_HEADERS:
        value = response.headers.get(name)
        if value:
            return value
    return None


def decode_requirements_header(header: str) -> Dict[str, Any]:
    """
    Base64-decode and JSON-parse a requirements header.

    Standard and URL-safe alphabets are accepted, with or without padding.
    Numbers are parsed as ``Decimal`` so large amounts keep every digit.

    Raises:
        MalformedRequirementsError: Not base64 JSON of an object
    """
    try:
        encoded = header.strip().replace("-", "+").replace("_", "/")
        raw = base64.b64decode(encoded + "=" * (-len(encoded) % 4), validate=True)
        data = json.loads(raw.decode("utf-8"), parse_float=Decimal)
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise MalformedRequirementsError(f"Invalid payment requirements header: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedRequirementsError("Invalid payment requirements header: expected a JSON object")
    return data


def requirements_from_dict(
    data: Dict[str, Any],
    now: Optional[int] = None,
    default_chain_id: int = DEFAULT_CHAIN_ID,
) -> PaymentRequirements:
    """
    Build validated requirements from a decoded payload.

    Raises:
        MalformedRequirementsError: Missing or invalid fields
        ExpiredRequirementsError: ``validBefore`` is not after ``now``
    """
    current = int(time.time()) if now is None else now

    recipient = _first(data, ("recipient", "payee"))
    amount = _first(data, ("amount", "maxAmountRequired"))
    if recipient is _MISSING or amount is _MISSING:
        raise MalformedRequirementsError("Invalid payment requirements: missing recipient or amount")

    raw_network = _first(data, ("network", "chainId"))
    network = default_chain_id
    if raw_network is not _MISSING:
        if isinstance(raw_network, Decimal):
            raw_network = _to_int(raw_network, "network")
        try:
            network = resolve_chain_id(raw_network)
        except ValueError as exc:
            raise MalformedRequirementsError(f"Invalid payment requirements: {exc}") from exc

    asset = _first(data, ("asset", "usdcAddress"))
    if asset is _MISSING:
        asset = default_usdc_address(network)

    valid_after = data.get("validAfter")
    valid_before = data.get("validBefore")

    try:
        requirements = PaymentRequirements(
            recipient=recipient,
            amount=_to_int(amount, "amount"),
            asset=asset,
            network=network,
            valid_after=0 if valid_after is None else _to_int(valid_after, "validAfter"),
            valid_before=(
                current + DEFAULT_VALIDITY_SECONDS
                if valid_before is None
                else _to_int(valid_before, "validBefore")
            ),
        )
    except ValidationError as exc:
        raise MalformedRequirementsError(f"Invalid payment requirements: {exc.errors()[0]['msg']}") from exc

    if requirements.valid_before <= current:
        raise ExpiredRequirementsError(
            f"Payment requirements expired at {requirements.valid_before}",
            requirements,
        )
    return requirements


def parse_payment_required(
    response: httpx.Response,
    now: Optional[int] = None,
    default_chain_id: int = DEFAULT_CHAIN_ID,
) -> Optional[PaymentRequirements]:
    """
    Parse payment requirements from a 402 response.

    Args:
        response: Any HTTP response
        now: Current unix time (defaults to the system clock)
        default_chain_id: Network assumed when the payload names none

    Returns:
        PaymentRequirements, or None if the response is not a 402

    Raises:
        MalformedRequirementsError: Header missing, undecodable or incomplete
        ExpiredRequirementsError: The requirement's window has closed
    """
    if response.status_code != 402:
        return None

    header = _read_header(response)
    if header is None:
        raise MalformedRequirementsError("Missing X-PAYMENT-REQUIRED header in 402 response")

    return requirements_from_dict(decode_requirements_header(header), now=now, default_chain_id=default_chain_id)
