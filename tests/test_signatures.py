"""
EIP-3009 authorization signing, the X-PAYMENT codec and offline verification.
"""

import base64
import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from nullpath_x402.adapters.evm.constants import BASE_SEPOLIA_CHAIN_ID, USDC_ADDRESS_BASE_SEPOLIA
from nullpath_x402.adapters.evm.signatures import (
    create_transfer_authorization_params,
    decode_payment_header,
    encode_payment_header,
    encode_payment_payload,
    generate_nonce,
    sign_payment,
    sign_transfer_authorization,
    to_payment_payload,
)
from nullpath_x402.adapters.evm.verifies import verify_payment_payload
from nullpath_x402.adapters.evm.wallet import create_wallet
from nullpath_x402.engine.exceptions import (
    PaymentErrorKind,
    PaymentSigningError,
    RequirementsMismatchError,
)
from nullpath_x402.schemas.bases import VerificationStatus

from test_mocks import (
    LARGE_AMOUNT,
    OTHER_PRIVATE_KEY,
    RECIPIENT,
    TEST_ADDRESS,
    TEST_PRIVATE_KEY,
    make_requirements,
)

FIXED_NONCE = "0x" + "ab" * 32


@pytest.fixture
def identity():
    return create_wallet(TEST_PRIVATE_KEY)


@pytest.fixture
def requirements():
    return make_requirements()


class TestNonce:

    def test_format(self):
        nonce = generate_nonce()
        assert nonce.startswith("0x")
        assert len(nonce) == 66
        int(nonce, 16)

    def test_unique(self):
        assert len({generate_nonce() for _ in range(100)}) == 100


class TestSignPayment:

    def test_signature_recovers_to_wallet(self, identity, requirements):
        signed = sign_payment(identity, requirements)

        assert signed.sender == TEST_ADDRESS
        assert signed.recipient == RECIPIENT
        assert signed.value == 1000
        assert signed.valid_after == requirements.valid_after
        assert signed.valid_before == requirements.valid_before

        result = verify_payment_payload(to_payment_payload(signed), requirements)
        assert result.is_success()
        assert result.authorizer == TEST_ADDRESS

    def test_signature_components(self, identity, requirements):
        signed = sign_payment(identity, requirements, nonce=FIXED_NONCE)

        assert len(signed.signature) == 132
        assert signed.r == "0x" + signed.signature[2:66]
        assert signed.s == "0x" + signed.signature[66:130]
        assert signed.v == int(signed.signature[130:132], 16)
        assert signed.v in (27, 28)
        assert signed.nonce == FIXED_NONCE

    def test_fresh_nonce_per_signature(self, identity, requirements):
        first = sign_payment(identity, requirements)
        second = sign_payment(identity, requirements)
        assert first.nonce != second.nonce
        assert first.signature != second.signature

    def test_large_amount(self, identity):
        requirements = make_requirements(amount=str(LARGE_AMOUNT))
        signed = sign_payment(identity, requirements)
        assert signed.value == LARGE_AMOUNT
        assert verify_payment_payload(to_payment_payload(signed), requirements).is_success()

    def test_other_network(self):
        identity = create_wallet(TEST_PRIVATE_KEY, chain_id=BASE_SEPOLIA_CHAIN_ID)
        requirements = make_requirements(network=BASE_SEPOLIA_CHAIN_ID, asset=USDC_ADDRESS_BASE_SEPOLIA)
        signed = sign_payment(identity, requirements)
        assert verify_payment_payload(to_payment_payload(signed), requirements).is_success()

    def test_asset_compared_case_insensitively(self, identity):
        requirements = make_requirements(asset=identity.asset.lower())
        assert sign_payment(identity, requirements).sender == TEST_ADDRESS


class TestRequirementsMismatch:

    @pytest.mark.parametrize("overrides", [
        {"network": BASE_SEPOLIA_CHAIN_ID},
        {"asset": USDC_ADDRESS_BASE_SEPOLIA},
    ])
    def test_mismatch_never_signs(self, identity, overrides):
        requirements = make_requirements(**overrides)
        with patch.object(identity, "sign_typed_data", wraps=identity.sign_typed_data) as signer:
            with pytest.raises(RequirementsMismatchError) as exc_info:
                sign_payment(identity, requirements)

        assert signer.call_count == 0
        assert exc_info.value.kind == PaymentErrorKind.MISMATCH


class TestSigningFailures:

    def test_wrong_signature_length(self, identity, requirements):
        short = SimpleNamespace(signature=b"\x01" * 64)
        with patch.object(identity, "sign_typed_data", return_value=short):
            with pytest.raises(PaymentSigningError) as exc_info:
                sign_payment(identity, requirements)
        assert "Unexpected signature length" in exc_info.value.message

    def test_underlying_error_is_wrapped(self, identity, requirements):
        boom = RuntimeError("signer unavailable")
        with patch.object(identity, "sign_typed_data", side_effect=boom):
            with pytest.raises(PaymentSigningError) as exc_info:
                sign_payment(identity, requirements)

        assert exc_info.value.kind == PaymentErrorKind.SIGNING_FAILED
        assert exc_info.value.cause is boom
        assert exc_info.value.__cause__ is boom
        assert TEST_PRIVATE_KEY[2:] not in exc_info.value.message

    def test_sender_must_be_signer(self, identity):
        other = create_wallet(OTHER_PRIVATE_KEY)
        params = create_transfer_authorization_params(other.address, RECIPIENT, "0.01")
        with pytest.raises(ValueError):
            sign_transfer_authorization(identity, params)


class TestCreateTransferAuthorizationParams:

    def test_values(self):
        params = create_transfer_authorization_params(TEST_ADDRESS, RECIPIENT, "0.001", validity_seconds=60)
        assert params.value == 1000
        assert params.valid_after == 0
        assert params.valid_before > 0
        assert len(params.nonce) == 66


class TestPaymentHeader:

    def _sample(self):
        return {
            "signature": "0x" + "11" * 65,
            "from": TEST_ADDRESS,
            "to": RECIPIENT,
            "value": str(LARGE_AMOUNT),
            "validAfter": "0",
            "validBefore": "1700000300",
            "nonce": FIXED_NONCE,
        }

    def test_round_trip_is_byte_identical(self):
        header = base64.b64encode(
            json.dumps(self._sample(), separators=(",", ":")).encode()
        ).decode()
        assert encode_payment_payload(decode_payment_header(header)) == header

    def test_encoded_fields_are_decimal_strings(self, identity, requirements):
        signed = sign_payment(identity, requirements)
        data = json.loads(base64.b64decode(encode_payment_header(signed)))

        assert list(data) == ["signature", "from", "to", "value", "validAfter", "validBefore", "nonce"]
        assert data["value"] == "1000"
        assert data["validAfter"] == str(requirements.valid_after)
        assert data["validBefore"] == str(requirements.valid_before)
        assert data["from"] == TEST_ADDRESS

    @pytest.mark.parametrize("header", ["%%%", base64.b64encode(b'{"signature": "0x"}').decode()])
    def test_decode_rejects_garbage(self, header):
        with pytest.raises(ValueError):
            decode_payment_header(header)


class TestVerifyPaymentPayload:

    def test_tampered_nonce(self, identity, requirements):
        payload = to_payment_payload(sign_payment(identity, requirements))
        tampered = payload.model_copy(update={"nonce": FIXED_NONCE})
        result = verify_payment_payload(tampered, requirements)
        assert result.status == VerificationStatus.INVALID_SIGNATURE
        assert not result.is_valid

    def test_amount_mismatch(self, identity, requirements):
        payload = to_payment_payload(sign_payment(identity, requirements))
        other = make_requirements(amount="2000")
        assert verify_payment_payload(payload, other).status == VerificationStatus.TERMS_MISMATCH

    def test_expired(self, identity, requirements):
        payload = to_payment_payload(sign_payment(identity, requirements))
        result = verify_payment_payload(payload, requirements, now=requirements.valid_before)
        assert result.status == VerificationStatus.EXPIRED
