"""
EIP-712 Signing Digest and Signer Recovery

    digest = keccak256(0x19 || 0x01 || domainSeparator || hashStruct(message))

``0x19 0x01`` is the EIP-191 prefix with version byte ``0x01`` (structured
data).  Exactly 66 bytes are hashed.

Signatures are accepted in the 65-byte ``r || s || v`` form or the 64-byte
EIP-2098 compact ``r || vs`` form, where the top bit of ``vs`` carries the
recovery id and the remaining 255 bits carry ``s``.  Recovery follows
``ecrecover``: secp256k1 public-key recovery, then the low 20 bytes of the
keccak256 of the 64-byte uncompressed public key.
"""

import logging
from typing import Any, Mapping, NamedTuple, Union

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as KeysValidationError
from eth_utils import to_checksum_address

from ..engine.exceptions import (
    FieldMismatchError,
    InvalidSignatureError,
    InvalidSignatureLengthError,
    InvalidValueError,
    SignatureVerificationError,
    TypeEncodingError,
)
from .domain import DOMAIN_TYPE_NAME, DomainDescriptor, as_domain, build_domain_separator
from .encoding import StructDefinition, TypeRegistry
from .hashing import encode_address, hash_struct, keccak256

logger = logging.getLogger(__name__)

EIP191_STRUCTURED_DATA_PREFIX = b"\x19\x01"

#: Order of the secp256k1 group.
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

_S_MASK = (1 << 255) - 1

SignatureLike = Union[bytes, bytearray, str, "ParsedSignature"]


class ParsedSignature(NamedTuple):
    """ECDSA signature with ``v`` normalised to 27 or 28."""

    v: int
    r: int
    s: int

    def to_bytes(self) -> bytes:
        """65-byte ``r || s || v`` form."""
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    def to_compact(self) -> bytes:
        """
        64-byte EIP-2098 ``r || vs`` form.

        Raises:
            InvalidSignatureError: ``s`` uses its top bit, which the compact
                form reserves for the recovery id.
        """
        if self.s >> 255:
            raise InvalidSignatureError("s has its top bit set; signature cannot be made compact")
        vs = ((self.v - 27) << 255) | self.s
        return self.r.to_bytes(32, "big") + vs.to_bytes(32, "big")

    def to_hex(self) -> str:
        return "0x" + self.to_bytes().hex()


def normalize_v(v: int) -> int:
    """Map raw recovery ids 0/1 to 27/28; pass 27/28 through; reject anything else."""
    if v in (0, 1):
        return v + 27
    if v in (27, 28):
        return v
    raise InvalidSignatureError(f"Invalid recovery id v={v}; expected 0, 1, 27 or 28")


def _signature_bytes(signature: Any) -> bytes:
    if isinstance(signature, (bytes, bytearray, memoryview)):
        return bytes(signature)
    if isinstance(signature, str):
        text = signature[2:] if signature[:2].lower() == "0x" else signature
        try:
            return bytes.fromhex(text)
        except ValueError as exc:
            raise InvalidSignatureError(f"Signature is not valid hex: {signature!r}") from exc
    raise InvalidSignatureError(f"Unsupported signature type: {type(signature).__name__}")


def parse_signature(signature: SignatureLike) -> ParsedSignature:
    """
    Parse a 65-byte or 64-byte compact signature.

    Args:
        signature: Raw bytes, a hex string (0x prefix optional) or an
            already parsed signature.

    Raises:
        InvalidSignatureLengthError: Length other than 64 or 65 bytes.
        InvalidSignatureError: Recovery id cannot be normalised.
    """
    if isinstance(signature, ParsedSignature):
        return ParsedSignature(normalize_v(signature.v), signature.r, signature.s)

    raw = _signature_bytes(signature)
    if len(raw) == 65:
        return ParsedSignature(
            v=normalize_v(raw[64]),
            r=int.from_bytes(raw[:32], "big"),
            s=int.from_bytes(raw[32:64], "big"),
        )
    if len(raw) == 64:
        vs = int.from_bytes(raw[32:], "big")
        return ParsedSignature(
            v=(vs >> 255) + 27,
            r=int.from_bytes(raw[:32], "big"),
            s=vs & _S_MASK,
        )
    raise InvalidSignatureLengthError(len(raw))


def to_compact_signature(signature: SignatureLike) -> bytes:
    return parse_signature(signature).to_compact()


def to_expanded_signature(signature: SignatureLike) -> bytes:
    return parse_signature(signature).to_bytes()


def digest_from_hashes(domain_separator: bytes, struct_hash: bytes) -> bytes:
    """Signing digest from a precomputed domain separator and struct hash."""
    if len(domain_separator) != 32 or len(struct_hash) != 32:
        raise InvalidValueError("domain separator and struct hash must both be 32 bytes")
    return keccak256(EIP191_STRUCTURED_DATA_PREFIX + bytes(domain_separator) + bytes(struct_hash))


def build_digest(
    domain: Union[DomainDescriptor, Mapping[str, Any]],
    primary_type: str,
    message: Mapping[str, Any],
    registry: TypeRegistry,
) -> bytes:
    """
    Compute the 32-byte EIP-712 signing digest.

    Args:
        domain: Domain descriptor (or ``signTypedData`` domain mapping).
        primary_type: Name of the message struct in ``registry``.
        message: Field values of ``primary_type``.
        registry: Struct definitions for ``primary_type`` and its references.
    """
    domain_separator = build_domain_separator(domain)
    struct_hash = hash_struct(primary_type, message, registry)
    digest = digest_from_hashes(domain_separator, struct_hash)
    logger.debug("EIP-712 digest for %s: 0x%s", primary_type, digest.hex())
    return digest


def hash_typed_data(full_message: Mapping[str, Any]) -> bytes:
    """
    Signing digest of a ``signTypedData`` payload.

    ``full_message`` has the keys ``types``, ``primaryType``, ``domain`` and
    ``message``.  When ``types`` declares ``EIP712Domain`` its fields must be
    exactly the fields present in ``domain``.
    """
    if not isinstance(full_message, Mapping):
        raise TypeEncodingError(f"Typed data must be a mapping, got {type(full_message).__name__}")
    try:
        types = full_message["types"]
        primary_type = full_message["primaryType"]
        message = full_message["message"]
    except KeyError as exc:
        raise TypeEncodingError(f"Typed data is missing {exc.args[0]!r}") from exc
    if not isinstance(types, Mapping):
        raise TypeEncodingError(f"Typed data 'types' must be a mapping, got {type(types).__name__}")

    domain = as_domain(full_message.get("domain", {}))
    declared_domain = types.get(DOMAIN_TYPE_NAME)
    if declared_domain is not None:
        declared = StructDefinition.from_members(DOMAIN_TYPE_NAME, declared_domain).field_names
        present = domain.present_fields()
        if set(declared) != set(present):
            raise FieldMismatchError(
                DOMAIN_TYPE_NAME,
                missing=set(declared) - set(present),
                unexpected=set(present) - set(declared),
            )

    registry = TypeRegistry.from_types(types)
    return build_digest(domain, primary_type, message, registry)


def _validate_components(signature: ParsedSignature, reject_high_s: bool) -> None:
    if signature.v not in (27, 28):
        raise InvalidSignatureError(f"Invalid recovery id v={signature.v}")
    if not 0 < signature.r < SECP256K1_N:
        raise InvalidSignatureError("r must be in [1, n-1]")
    if not 0 < signature.s < SECP256K1_N:
        raise InvalidSignatureError("s must be in [1, n-1]")
    if reject_high_s and signature.s > SECP256K1_HALF_N:
        raise InvalidSignatureError("s is in the upper half of the curve order (malleable signature)")


def recover_address(digest: bytes, signature: SignatureLike, *, reject_high_s: bool = False) -> str:
    """
    Recover the signer address of ``digest``.

    Args:
        digest: 32-byte signing digest.
        signature: 65-byte, 64-byte compact, hex or parsed signature.
        reject_high_s: Enforce EIP-2 low-s signatures.  ``ecrecover``
            itself accepts both halves, so this is off by default.

    Returns:
        EIP-55 checksum address of the signer.

    Raises:
        InvalidSignatureLengthError: Signature is not 64 or 65 bytes.
        InvalidSignatureError: Digest is not 32 bytes, invalid components or
            no recoverable point.
    """
    if len(digest) != 32:
        raise InvalidSignatureError(f"digest must be 32 bytes, got {len(digest)}")
    parsed = parse_signature(signature)
    _validate_components(parsed, reject_high_s)

    try:
        public_key = keys.Signature(vrs=(parsed.v - 27, parsed.r, parsed.s)).recover_public_key_from_msg_hash(
            bytes(digest)
        )
    except (BadSignature, KeysValidationError) as exc:
        raise InvalidSignatureError(f"Public key recovery failed: {exc}") from exc

    address = to_checksum_address(keccak256(public_key.to_bytes())[12:])
    logger.debug("Recovered signer %s for digest 0x%s", address, bytes(digest).hex())
    return address


def verify_digest(
    digest: bytes,
    signature: SignatureLike,
    expected_signer: Union[str, bytes],
    *,
    reject_high_s: bool = False,
) -> bool:
    """
    Return True iff ``signature`` over ``digest`` recovers to ``expected_signer``.

    Addresses are compared as raw 20 bytes, so checksum casing is
    irrelevant.  Malformed signatures raise rather than return False.
    """
    expected = encode_address(expected_signer)
    recovered = recover_address(digest, signature, reject_high_s=reject_high_s)
    return encode_address(recovered) == expected


def verify(
    domain: Union[DomainDescriptor, Mapping[str, Any]],
    primary_type: str,
    message: Mapping[str, Any],
    signature: SignatureLike,
    expected_signer: Union[str, bytes],
    registry: TypeRegistry,
    *,
    reject_high_s: bool = False,
) -> bool:
    digest = build_digest(domain, primary_type, message, registry)
    return verify_digest(digest, signature, expected_signer, reject_high_s=reject_high_s)


def recover_typed_data_signer(
    full_message: Mapping[str, Any],
    signature: SignatureLike,
    *,
    reject_high_s: bool = False,
) -> str:
    return recover_address(hash_typed_data(full_message), signature, reject_high_s=reject_high_s)


def ensure_signer(
    digest: bytes,
    signature: SignatureLike,
    expected_signer: Union[str, bytes],
    *,
    reject_high_s: bool = False,
) -> str:
    """
    Raising form of ``verify_digest``.

    Returns:
        The recovered checksum address.

    Raises:
        SignatureVerificationError: The signature was made by another key.
    """
    recovered = recover_address(digest, signature, reject_high_s=reject_high_s)
    if encode_address(recovered) != encode_address(expected_signer):
        expected = expected_signer if isinstance(expected_signer, str) else to_checksum_address(expected_signer)
        raise SignatureVerificationError(expected, recovered)
    return recovered
