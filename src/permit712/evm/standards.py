"""
EIP-2612 Permit Typed Data

Dataclass envelopes for the ``Permit(address owner,address spender,uint256
value,uint256 nonce,uint256 deadline)`` struct and the four-field token
domain, plus the type hashes an EIP-2612 token hard-codes.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List

from ..eip712.digest import digest_from_hashes, hash_typed_data
from ..eip712.domain import DomainDescriptor, cached_domain_separator, domain_struct_definition_for
from ..eip712.encoding import TypeRegistry
from ..eip712.hashing import hash_struct, hash_type, keccak256


# -----------------------------
# Type definitions and type hashes
# -----------------------------

EIP712_DOMAIN_FIELDS = ("name", "version", "chainId", "verifyingContract")

EIP712_DOMAIN_TYPE_STRING: str = domain_struct_definition_for(EIP712_DOMAIN_FIELDS).encode()
EIP712_DOMAIN_TYPEHASH: bytes = keccak256(EIP712_DOMAIN_TYPE_STRING.encode("utf-8"))

PERMIT_TYPES: Dict[str, List[Dict[str, str]]] = {
    "Permit": [
        {"name": "owner", "type": "address"},
        {"name": "spender", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "nonce", "type": "uint256"},
        {"name": "deadline", "type": "uint256"},
    ],
}

PERMIT_REGISTRY = TypeRegistry.from_types(PERMIT_TYPES)
PERMIT_TYPE_STRING: str = PERMIT_REGISTRY.encode_type("Permit")
PERMIT_TYPEHASH: bytes = hash_type("Permit", PERMIT_REGISTRY)


# -----------------------------
# EIP-712 Domain
# -----------------------------

@dataclass
class EIP712Domain:
    """
    EIP-712 domain of an EIP-2612 token.
    Used to prevent signature replay across tokens, chains and versions.
    """
    name: str
    version: str
    chainId: int
    verifyingContract: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chainId,
            "verifyingContract": self.verifyingContract,
        }

    def to_descriptor(self) -> DomainDescriptor:
        return DomainDescriptor.from_dict(self.to_dict())


# -----------------------------
# Permit Message (EIP-2612)
# -----------------------------

@dataclass
class PermitMessage:
    """
    Permit message as defined in EIP-2612.
    Represents token allowance authorization.
    """
    owner: str
    spender: str
    value: int
    nonce: int
    deadline: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "spender": self.spender,
            "value": self.value,
            "nonce": self.nonce,
            "deadline": self.deadline,
        }

    def struct_hash(self) -> bytes:
        return hash_struct("Permit", self.to_dict(), PERMIT_REGISTRY)


# -----------------------------
# EIP-712 Typed Data Wrapper
# -----------------------------

@dataclass
class PermitTypedData:
    """
    EIP-2612 typed data container.

    ``to_dict()`` produces the ``{types, primaryType, domain, message}``
    payload that can be passed directly to ``signTypedData`` /
    ``eth_account.Account.sign_typed_data``.

    Attributes:
        domain: EIP712Domain instance describing the token domain.
        message: PermitMessage instance carrying the payload.
        primary_type: The primary EIP-712 type (always "Permit").
        types: The typed definitions required by EIP-712 (automatically set).
    """
    domain: EIP712Domain
    message: PermitMessage

    primary_type: str = "Permit"

    types: Dict[str, List[Dict[str, str]]] = field(
        default_factory=lambda: {
            "EIP712Domain": domain_struct_definition_for(EIP712_DOMAIN_FIELDS).to_members(),
            "Permit": [dict(member) for member in PERMIT_TYPES["Permit"]],
        }
    )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the typed data into a dict compatible with EIP-712 signing.
        """
        return {
            "types": self.types,
            "primaryType": self.primary_type,
            "domain": self.domain.to_dict(),
            "message": self.message.to_dict(),
        }

    def domain_separator(self) -> bytes:
        return cached_domain_separator(self.domain.to_descriptor())

    def digest(self) -> bytes:
        """The 32-byte digest an EIP-2612 token checks in ``permit()``."""
        return digest_from_hashes(self.domain_separator(), self.message.struct_hash())

    def signable_digest(self) -> bytes:
        """Digest of ``to_dict()``; equal to ``digest()`` unless ``types`` was altered."""
        return hash_typed_data(self.to_dict())


def build_permit_typed_data(
    *,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
    chain_id: int,
    verifying_contract: str,
    domain_name: str,
    domain_version: str,
) -> PermitTypedData:
    """
    Wrap EIP-2612 permit fields in a ``PermitTypedData`` envelope without signing.

    Use this when signing is handled externally (e.g. a browser wallet or a
    hardware signer); the envelope's ``to_dict()`` is the exact payload
    those signers expect.

    Args:
        owner:              Token owner granting the allowance.
        spender:            Address allowed to spend.
        value:              Allowance in the token's smallest unit.
        nonce:              Current ``nonces(owner)`` of the token.
        deadline:           Unix timestamp after which the permit is invalid.
        chain_id:           EVM network ID.
        verifying_contract: Token contract address.
        domain_name:        EIP-712 domain ``name`` stored in the token.
        domain_version:     EIP-712 domain ``version`` stored in the token.
    """
    domain = EIP712Domain(
        name=domain_name,
        version=domain_version,
        chainId=chain_id,
        verifyingContract=verifying_contract,
    )
    message = PermitMessage(
        owner=owner,
        spender=spender,
        value=value,
        nonce=nonce,
        deadline=deadline,
    )
    return PermitTypedData(domain=domain, message=message)
