"""
Test suite for EIP-712 value encoding and struct hashing.
Tests: 1) Per-type word encoding 2) Struct hashes against published values 3) Value validation
"""
import pytest

from permit712.eip712 import (
    TypeRegistry,
    encode_address,
    encode_data,
    encode_value,
    hash_struct,
    hash_type,
    keccak256,
)
from permit712.eip712.hashing import parse_integer
from permit712.engine.exceptions import (
    FieldMismatchError,
    InvalidValueError,
    UndefinedTypeError,
)


MAIL_REGISTRY = TypeRegistry.from_types({
    "Person": [
        {"name": "name", "type": "string"},
        {"name": "wallet", "type": "address"},
    ],
    "Mail": [
        {"name": "from", "type": "Person"},
        {"name": "to", "type": "Person"},
        {"name": "contents", "type": "string"},
    ],
})

MAIL_MESSAGE = {
    "from": {"name": "Cow", "wallet": "0xCD2a3d9F938E13CD947Ec05AbC7FE734Df8DD826"},
    "to": {"name": "Bob", "wallet": "0xbBbBBBBbbBBBbbbBbbBbbbbBBbBbbbbBbBbbBBbB"},
    "contents": "Hello, Bob!",
}

EMPTY = TypeRegistry()
ADDRESS_CHECKSUM = "0xCD2a3d9F938E13CD947Ec05AbC7FE734Df8DD826"


class TestAtomicEncoding:

    def test_uint_is_left_padded(self):
        assert encode_value("uint256", 1000, EMPTY) == (1000).to_bytes(32, "big")

    def test_negative_int_is_twos_complement(self):
        assert encode_value("int8", -1, EMPTY) == b"\xff" * 32

    def test_integer_from_string(self):
        assert encode_value("uint256", "0x10", EMPTY) == encode_value("uint256", 16, EMPTY)
        assert encode_value("uint256", "16", EMPTY) == encode_value("uint256", 16, EMPTY)

    @pytest.mark.parametrize("type_name,value", [
        ("uint8", 256),
        ("uint256", -1),
        ("int8", 128),
        ("int8", -129),
        ("uint256", 2 ** 256),
    ])
    def test_integer_out_of_range(self, type_name, value):
        with pytest.raises(InvalidValueError):
            encode_value(type_name, value, EMPTY)

    @pytest.mark.parametrize("type_name", [f"uint{bits}" for bits in range(8, 257, 8)]
                             + [f"int{bits}" for bits in range(8, 257, 8)]
                             + [f"bytes{size}" for size in range(1, 33)])
    def test_every_recognised_size_encodes(self, type_name):
        value = bytes(int(type_name[5:])) if type_name.startswith("bytes") else 0
        assert encode_value(type_name, value, EMPTY) == bytes(32)

    def test_parse_integer(self):
        assert parse_integer("0x10") == parse_integer(" 16 ") == 16
        with pytest.raises(InvalidValueError):
            parse_integer("sixteen", "deadline")

    def test_bool_rejected_as_integer(self):
        with pytest.raises(InvalidValueError):
            encode_value("uint256", True, EMPTY)

    def test_bool_encoding(self):
        assert encode_value("bool", True, EMPTY) == (1).to_bytes(32, "big")
        assert encode_value("bool", False, EMPTY) == bytes(32)

    def test_bool_requires_python_bool(self):
        with pytest.raises(InvalidValueError):
            encode_value("bool", 1, EMPTY)

    def test_fixed_bytes_right_padded(self):
        assert encode_value("bytes4", b"\xde\xad\xbe\xef", EMPTY) == b"\xde\xad\xbe\xef" + bytes(28)
        assert encode_value("bytes4", "0xdeadbeef", EMPTY) == b"\xde\xad\xbe\xef" + bytes(28)

    def test_fixed_bytes_wrong_length(self):
        with pytest.raises(InvalidValueError):
            encode_value("bytes4", b"\x01\x02", EMPTY)

    def test_dynamic_values_are_hashed(self):
        assert encode_value("string", "Hello, Bob!", EMPTY) == keccak256(b"Hello, Bob!")
        assert encode_value("bytes", b"\x01\x02", EMPTY) == keccak256(b"\x01\x02")
        assert encode_value("bytes", "0x0102", EMPTY) == keccak256(b"\x01\x02")

    def test_string_requires_str(self):
        with pytest.raises(InvalidValueError):
            encode_value("string", b"Hello", EMPTY)


class TestAddressEncoding:

    def test_casing_does_not_affect_encoding(self):
        lower = encode_value("address", ADDRESS_CHECKSUM.lower(), EMPTY)
        assert encode_value("address", ADDRESS_CHECKSUM, EMPTY) == lower
        assert encode_value("address", "0x" + ADDRESS_CHECKSUM[2:].upper(), EMPTY) == lower

    def test_raw_bytes_accepted(self):
        raw = bytes.fromhex(ADDRESS_CHECKSUM[2:])
        assert encode_value("address", raw, EMPTY) == bytes(12) + raw

    def test_bad_checksum_rejected(self):
        bad = ADDRESS_CHECKSUM[:2] + ADDRESS_CHECKSUM[2].lower() + ADDRESS_CHECKSUM[3:]
        with pytest.raises(InvalidValueError):
            encode_address(bad)

    @pytest.mark.parametrize("value", ["0x1234", "not an address", 123, b"\x00" * 19])
    def test_malformed_address(self, value):
        with pytest.raises(InvalidValueError):
            encode_address(value)


class TestArrayEncoding:

    def test_array_is_hash_of_concatenated_elements(self):
        expected = keccak256((1).to_bytes(32, "big") + (2).to_bytes(32, "big"))
        assert encode_value("uint256[]", [1, 2], EMPTY) == expected
        assert encode_value("uint256[2]", (1, 2), EMPTY) == expected

    def test_empty_dynamic_array(self):
        assert encode_value("uint256[]", [], EMPTY) == keccak256(b"")

    def test_fixed_array_length_enforced(self):
        with pytest.raises(InvalidValueError):
            encode_value("uint256[3]", [1, 2], EMPTY)

    def test_nested_arrays(self):
        inner = encode_value("uint256[]", [1], EMPTY)
        assert encode_value("uint256[][1]", [[1]], EMPTY) == keccak256(inner)

    def test_struct_array_uses_struct_hashes(self):
        people = [MAIL_MESSAGE["from"], MAIL_MESSAGE["to"]]
        expected = keccak256(b"".join(hash_struct("Person", p, MAIL_REGISTRY) for p in people))
        assert encode_value("Person[]", people, MAIL_REGISTRY) == expected

    def test_string_is_not_an_array(self):
        with pytest.raises(InvalidValueError):
            encode_value("uint8[]", "abc", EMPTY)


class TestStructHashing:

    def test_mail_struct_hash_matches_published_value(self):
        assert hash_struct("Mail", MAIL_MESSAGE, MAIL_REGISTRY).hex() == (
            "c52c0ee5d84264471806290a3f2c4cecfc5490626bf912d01f240d7a274b371e"
        )

    def test_encode_data_layout(self):
        person = MAIL_MESSAGE["from"]
        encoded = encode_data("Person", person, MAIL_REGISTRY)
        assert len(encoded) == 32 * 3
        assert encoded[:32] == hash_type("Person", MAIL_REGISTRY)
        assert encoded[32:64] == keccak256(b"Cow")
        assert encoded[64:] == bytes(12) + bytes.fromhex(person["wallet"][2:])

    def test_deterministic(self):
        assert hash_struct("Mail", MAIL_MESSAGE, MAIL_REGISTRY) == hash_struct("Mail", MAIL_MESSAGE, MAIL_REGISTRY)

    def test_missing_field(self):
        message = {"from": MAIL_MESSAGE["from"], "to": MAIL_MESSAGE["to"]}
        with pytest.raises(FieldMismatchError) as exc_info:
            hash_struct("Mail", message, MAIL_REGISTRY)
        assert exc_info.value.missing == ["contents"]

    def test_unexpected_field(self):
        message = dict(MAIL_MESSAGE, extra=1)
        with pytest.raises(FieldMismatchError) as exc_info:
            hash_struct("Mail", message, MAIL_REGISTRY)
        assert exc_info.value.unexpected == ["extra"]

    def test_nested_field_mismatch(self):
        message = dict(MAIL_MESSAGE, to={"name": "Bob"})
        with pytest.raises(FieldMismatchError) as exc_info:
            hash_struct("Mail", message, MAIL_REGISTRY)
        assert exc_info.value.type_name == "Person"

    def test_invalid_value_names_field(self):
        message = dict(MAIL_MESSAGE, contents=42)
        with pytest.raises(InvalidValueError, match="Mail.contents"):
            hash_struct("Mail", message, MAIL_REGISTRY)

    def test_struct_value_must_be_mapping(self):
        with pytest.raises(InvalidValueError):
            hash_struct("Person", ["Cow", ADDRESS_CHECKSUM], MAIL_REGISTRY)

    def test_unknown_field_type(self):
        with pytest.raises(UndefinedTypeError):
            encode_value("Unknown", {}, MAIL_REGISTRY)
