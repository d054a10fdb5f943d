from dataclasses import dataclass, field
from typing import Any, Dict, List

from .constants import EvmChainConfig


# -----------------------------
# EIP-712 Domain
# -----------------------------

@dataclass(frozen=True)
class EIP712Domain:
    """
    EIP-712 domain separator.
    Binds a signature to one token contract on one chain.
    """
    name: str
    version: str
    chainId: int
    verifyingContract: str

    @classmethod
    def for_usdc(cls, chain: EvmChainConfig) -> "EIP712Domain":
        """Domain of the USDC deployment on ``chain``; the asset is the verifying contract."""
        return cls(
            name=chain.usdc.name,
            version=chain.usdc.version,
            chainId=chain.chain_id,
            verifyingContract=chain.usdc.address,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chainId,
            "verifyingContract": self.verifyingContract,
        }


# -----------------------------
# EIP-3009: Transfer With Authorization
# -----------------------------

TRANSFER_WITH_AUTHORIZATION_TYPES: Dict[str, List[Dict[str, str]]] = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "TransferWithAuthorization": [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


@dataclass(frozen=True)
class TransferWithAuthorizationMessage:
    """
    Message payload for EIP-3009 ``TransferWithAuthorization``.

    ``from`` is a Python keyword, so the sender is stored as ``sender`` and
    renamed in ``to_dict()``.
    """
    sender: str
    recipient: str
    value: int
    validAfter: int
    validBefore: int
    nonce: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.sender,
            "to": self.recipient,
            "value": self.value,
            "validAfter": self.validAfter,
            "validBefore": self.validBefore,
            "nonce": self.nonce,
        }


@dataclass(frozen=True)
class ERC3009TypedData:
    """
    Full EIP-712 envelope for a ``TransferWithAuthorization`` message.

    ``to_dict()`` yields ``{types, primaryType, domain, message}``, the layout
    accepted by ``eth_account`` ``sign_typed_data(full_message=...)`` and
    ``encode_typed_data(full_message=...)``.
    """
    domain: EIP712Domain
    message: TransferWithAuthorizationMessage

    primary_type: str = "TransferWithAuthorization"

    types: Dict[str, List[Dict[str, str]]] = field(
        default_factory=lambda: TRANSFER_WITH_AUTHORIZATION_TYPES
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }
