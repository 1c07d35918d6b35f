"""
EIP-712 Domain Separator

The domain separator scopes a signature to one application, contract,
chain and version.  Any subset of the five standard fields may be present;
only present fields take part in the ``EIP712Domain`` type string and in
the encoded values, always in the canonical order::

    name, version, chainId, verifyingContract, salt

Domain separators must be recomputed whenever the chain id or verifying
contract may differ (chain fork, redeployment).  ``cached_domain_separator``
keys its cache on every field, so a changed field is always a cache miss.
"""

from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ConfigDict, Field, field_serializer, field_validator
from eth_utils import to_checksum_address

from ..config import get_domain_cache_size
from ..engine.exceptions import InvalidValueError
from ..schemas.bases import CanonicalModel
from .encoding import StructDefinition, StructField, TypeRegistry
from .hashing import encode_address, hash_struct, keccak256

DOMAIN_TYPE_NAME = "EIP712Domain"

#: (signTypedData key, EIP-712 type, model attribute) in canonical order.
DOMAIN_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("name", "string", "name"),
    ("version", "string", "version"),
    ("chainId", "uint256", "chain_id"),
    ("verifyingContract", "address", "verifying_contract"),
    ("salt", "bytes32", "salt"),
)
_DOMAIN_FIELD_TYPES = {key: type_ for key, type_, _ in DOMAIN_FIELDS}


class DomainDescriptor(CanonicalModel):
    """
    EIP-712 domain with every field optional.

    Accepts both the Python attribute names and the ``signTypedData`` keys
    (``chainId``, ``verifyingContract``).  The verifying contract is stored
    as an EIP-55 checksum string and the salt as raw bytes.

    Attributes:
        name: Human-readable name of the signing domain (e.g. the token name).
        version: Current major version of the signing domain.
        chain_id: EIP-155 chain id.
        verifying_contract: Address of the contract that verifies signatures.
        salt: 32-byte disambiguating salt.

    Example::

        domain = DomainDescriptor(
            name="Polytrade",
            version="1.0",
            chainId=1,
            verifyingContract="0x0000000000000000000000000000000000000001",
        )
        separator = build_domain_separator(domain)
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    name: Optional[str] = Field(None, description="Signing domain name")
    version: Optional[str] = Field(None, description="Signing domain version")
    chain_id: Optional[int] = Field(None, alias="chainId", ge=0, lt=2 ** 256, description="EIP-155 chain id")
    verifying_contract: Optional[str] = Field(
        None, alias="verifyingContract", description="Verifying contract address"
    )
    salt: Optional[bytes] = Field(None, description="32-byte salt")

    @field_validator("chain_id", mode="before")
    @classmethod
    def _reject_bool_chain_id(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("chainId must be an integer")
        return value

    @field_validator("verifying_contract", mode="before")
    @classmethod
    def _canonical_contract(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return to_checksum_address(encode_address(value))

    @field_validator("salt", mode="before")
    @classmethod
    def _salt_bytes(cls, value: Any) -> Optional[bytes]:
        if value is None:
            return None
        if isinstance(value, str):
            if not value[:2].lower() == "0x":
                raise ValueError("salt must be 0x-prefixed hex or bytes")
            try:
                value = bytes.fromhex(value[2:])
            except ValueError as exc:
                raise ValueError(f"salt is not valid hex: {value!r}") from exc
        if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
            raise ValueError("salt must be exactly 32 bytes")
        return bytes(value)

    @field_serializer("salt")
    def _serialize_salt(self, value: Optional[bytes]) -> Optional[str]:
        return None if value is None else "0x" + value.hex()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DomainDescriptor":
        """Build from a ``signTypedData`` ``domain`` mapping."""
        return cls.model_validate(dict(data))

    def present_fields(self) -> List[str]:
        """Names (``signTypedData`` keys) of the present fields in canonical order."""
        return [key for key, _, attr in DOMAIN_FIELDS if getattr(self, attr) is not None]

    def to_dict(self) -> Dict[str, Any]:
        """``signTypedData`` ``domain`` mapping holding only the present fields."""
        data: Dict[str, Any] = {}
        for key, _, attr in DOMAIN_FIELDS:
            value = getattr(self, attr)
            if value is None:
                continue
            data[key] = "0x" + value.hex() if key == "salt" else value
        return data

    def cache_key(self) -> Tuple[Any, ...]:
        contract = None if self.verifying_contract is None else encode_address(self.verifying_contract)
        return (self.name, self.version, self.chain_id, contract, self.salt)


def as_domain(domain: Union[DomainDescriptor, Mapping[str, Any]]) -> DomainDescriptor:
    if isinstance(domain, DomainDescriptor):
        return domain
    if isinstance(domain, Mapping):
        return DomainDescriptor.from_dict(domain)
    raise InvalidValueError(f"domain must be a DomainDescriptor or mapping, got {type(domain).__name__}")


def domain_struct_definition_for(present: Sequence[str]) -> StructDefinition:
    """
    ``EIP712Domain`` definition for the given present field names.

    The fields are emitted in canonical order regardless of the order of
    ``present``.
    """
    unknown = set(present) - set(_DOMAIN_FIELD_TYPES)
    if unknown:
        raise InvalidValueError(f"Unknown EIP712Domain fields: {sorted(unknown)}")
    return StructDefinition(
        name=DOMAIN_TYPE_NAME,
        fields=tuple(
            StructField(name=key, type=type_) for key, type_, _ in DOMAIN_FIELDS if key in present
        ),
    )


def domain_struct_definition(domain: DomainDescriptor) -> StructDefinition:
    return domain_struct_definition_for(domain.present_fields())


def domain_type_string(domain: DomainDescriptor) -> str:
    return domain_struct_definition(domain).encode()


def domain_type_hash(domain: DomainDescriptor) -> bytes:
    return keccak256(domain_type_string(domain).encode("utf-8"))


def build_domain_separator(domain: Union[DomainDescriptor, Mapping[str, Any]]) -> bytes:
    """
    ``hashStruct(EIP712Domain)`` over the present domain fields.

    ``name`` and ``version`` are hashed, ``chainId`` and
    ``verifyingContract`` are padded to 32 bytes and ``salt`` is used as is.

    Returns:
        The 32-byte domain separator.
    """
    domain = as_domain(domain)
    registry = TypeRegistry([domain_struct_definition(domain)])
    return hash_struct(DOMAIN_TYPE_NAME, domain.to_dict(), registry)


def _separator_from_key(key: Tuple[Any, ...]) -> bytes:
    name, version, chain_id, contract, salt = key
    return build_domain_separator(
        DomainDescriptor(
            name=name,
            version=version,
            chain_id=chain_id,
            verifying_contract=contract,
            salt=salt,
        )
    )


_cached_separator = lru_cache(maxsize=get_domain_cache_size())(_separator_from_key)


def cached_domain_separator(domain: Union[DomainDescriptor, Mapping[str, Any]]) -> bytes:
    """
    Memoised ``build_domain_separator``.

    The cache key holds every domain field (the contract as raw bytes), so
    a different chain id, contract, name, version or salt never returns a
    previously cached separator.
    """
    return _cached_separator(as_domain(domain).cache_key())


def clear_domain_separator_cache() -> None:
    _cached_separator.cache_clear()


def domain_separator_cache_info():
    return _cached_separator.cache_info()
