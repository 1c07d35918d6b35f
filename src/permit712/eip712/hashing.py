"""
EIP-712 Hashing

Keccak-256 helpers plus ``hashStruct`` / ``encodeData`` from EIP-712.

    typeHash   = keccak256(encodeType(T))
    encodeData = typeHash || enc(field_1) || ... || enc(field_n)
    hashStruct = keccak256(encodeData)

Every field encodes to exactly 32 bytes:

- ``address``, ``bool``, ``uintN``, ``intN``: padded big-endian word
- ``bytesN``: the N bytes, right padded
- ``string``, ``bytes``: keccak256 of the contents
- nested struct: its ``hashStruct``
- arrays: keccak256 of the concatenated element encodings

Values are never coerced to a default: a missing field, an extra field or
a value that does not fit its declared type raises.
"""

from typing import Any, Mapping, Sequence

from eth_utils import is_checksum_address, is_hex, is_hex_address, keccak, to_canonical_address

from ..engine.exceptions import FieldMismatchError, InvalidValueError
from .encoding import (
    FIXED_BYTES_TYPE_PATTERN,
    INTEGER_TYPE_PATTERN,
    TypeRegistry,
    is_atomic_type,
    split_array_type,
)


WORD_SIZE = 32


def keccak256(data: bytes) -> bytes:
    """Keccak-256 (the Ethereum variant, not NIST SHA3-256) of ``data``."""
    return keccak(bytes(data))


def hash_type(primary_type: str, registry: TypeRegistry) -> bytes:
    return keccak256(registry.encode_type(primary_type).encode("utf-8"))


def encode_address(value: Any) -> bytes:
    """
    Canonicalize an address to its raw 20 bytes.

    Text addresses are accepted in lowercase, uppercase or EIP-55 checksum
    form; a mixed-case address with an invalid checksum is rejected since it
    most likely carries a typo.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise InvalidValueError(f"address must be 20 bytes, got {len(value)}")
        return bytes(value)
    if not isinstance(value, str) or not is_hex_address(value):
        raise InvalidValueError(f"Invalid address: {value!r}")
    digits = value[2:] if value.lower().startswith("0x") else value
    if digits != digits.lower() and digits != digits.upper() and not is_checksum_address(value):
        raise InvalidValueError(f"Invalid address checksum: {value!r}")
    return to_canonical_address(value)


def _to_bytes(value: Any, type_name: str) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str) and value[:2].lower() == "0x" and is_hex(value):
        hex_digits = value[2:]
        if len(hex_digits) % 2:
            raise InvalidValueError(f"{type_name} hex value has odd length: {value!r}")
        return bytes.fromhex(hex_digits)
    raise InvalidValueError(f"{type_name} value must be bytes or a 0x-prefixed hex string, got {value!r}")


def parse_integer(value: Any, type_name: str = "uint256") -> int:
    """Integer from an int, or a decimal or 0x-hex string; ``bool`` is rejected."""
    if isinstance(value, bool):
        raise InvalidValueError(f"{type_name} value must be an integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if text[:2].lower() == "0x" or text[:3].lower() == "-0x":
                return int(text, 16)
            return int(text, 10)
        except ValueError:
            pass
    raise InvalidValueError(f"{type_name} value must be an integer, got {value!r}")


def _encode_atomic(type_name: str, value: Any) -> bytes:
    if type_name == "address":
        return encode_address(value).rjust(WORD_SIZE, b"\x00")

    if type_name == "bool":
        if not isinstance(value, bool):
            raise InvalidValueError(f"bool value must be True or False, got {value!r}")
        return int(value).to_bytes(WORD_SIZE, "big")

    match = INTEGER_TYPE_PATTERN.match(type_name)
    if match:
        bits = int(match.group(2))
        number = parse_integer(value, type_name)
        if match.group(1) == "uint":
            if not 0 <= number < 2 ** bits:
                raise InvalidValueError(f"{number} out of range for {type_name}")
            return number.to_bytes(WORD_SIZE, "big")
        if not -(2 ** (bits - 1)) <= number < 2 ** (bits - 1):
            raise InvalidValueError(f"{number} out of range for {type_name}")
        return number.to_bytes(WORD_SIZE, "big", signed=True)

    match = FIXED_BYTES_TYPE_PATTERN.match(type_name)
    if match:
        size = int(match.group(1))
        raw = _to_bytes(value, type_name)
        if len(raw) != size:
            raise InvalidValueError(f"{type_name} value must be exactly {size} bytes, got {len(raw)}")
        return raw.ljust(WORD_SIZE, b"\x00")

    raise InvalidValueError(f"Unsupported atomic type {type_name!r}")


def _encode_array(inner_type: str, length, value: Any, registry: TypeRegistry) -> bytes:
    if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
        raise InvalidValueError(f"{inner_type} array value must be a list or tuple, got {type(value).__name__}")
    if length is not None and len(value) != length:
        raise InvalidValueError(f"{inner_type}[{length}] expects {length} elements, got {len(value)}")
    encoded = b"".join(encode_value(inner_type, item, registry) for item in value)
    return keccak256(encoded)


def encode_value(field_type: str, value: Any, registry: TypeRegistry) -> bytes:
    """
    Encode one field value as the 32-byte word used in ``encodeData``.

    Raises:
        InvalidValueError: ``value`` does not fit ``field_type``.
        FieldMismatchError: A nested struct value has missing or extra fields.
        UndefinedTypeError: ``field_type`` names an unknown struct.
    """
    array = split_array_type(field_type)
    if array is not None:
        inner_type, length = array
        return _encode_array(inner_type, length, value, registry)

    if field_type == "string":
        if not isinstance(value, str):
            raise InvalidValueError(f"string value must be str, got {type(value).__name__}")
        return keccak256(value.encode("utf-8"))

    if field_type == "bytes":
        return keccak256(_to_bytes(value, "bytes"))

    if field_type in registry:
        return hash_struct(field_type, value, registry)

    if is_atomic_type(field_type):
        return _encode_atomic(field_type, value)

    # Neither primitive nor registered.
    registry.resolve(field_type)
    raise InvalidValueError(f"Unsupported field type {field_type!r}")


def encode_data(primary_type: str, value: Mapping[str, Any], registry: TypeRegistry) -> bytes:
    """
    ``typeHash || enc(field_1) || ... || enc(field_n)`` in declaration order.

    Raises:
        FieldMismatchError: ``value`` lacks a declared field or has an undeclared one.
    """
    definition = registry.resolve(primary_type)
    type_hash = hash_type(primary_type, registry)

    if not isinstance(value, Mapping):
        raise InvalidValueError(f"Value for struct {primary_type!r} must be a mapping, got {type(value).__name__}")

    declared = definition.field_names
    missing = [name for name in declared if name not in value]
    unexpected = [key for key in value if key not in declared]
    if missing or unexpected:
        raise FieldMismatchError(primary_type, missing=missing, unexpected=unexpected)

    parts = [type_hash]
    for field in definition.fields:
        try:
            parts.append(encode_value(field.type, value[field.name], registry))
        except InvalidValueError as exc:
            raise InvalidValueError(f"{primary_type}.{field.name}: {exc}") from exc
    return b"".join(parts)


def hash_struct(primary_type: str, value: Mapping[str, Any], registry: TypeRegistry) -> bytes:
    return keccak256(encode_data(primary_type, value, registry))
