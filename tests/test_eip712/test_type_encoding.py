"""
Test suite for EIP-712 type encoding.
Tests: 1) Canonical type strings 2) Dependency discovery 3) Registry errors
"""
import pytest

from permit712.eip712 import (
    StructDefinition,
    StructField,
    TypeRegistry,
    encode_type,
    find_dependencies,
    hash_type,
    keccak256,
    parse_field_type,
    split_array_type,
    is_atomic_type,
)
from permit712.engine.exceptions import (
    CyclicTypeError,
    TypeEncodingError,
    UndefinedTypeError,
)


FIRST_STRUCT_TYPES = {
    "FirstStruct": [
        {"name": "owner", "type": "address"},
        {"name": "customer", "type": "Customer[]"},
        {"name": "seller", "type": "Seller"},
        {"name": "price", "type": "uint256"},
    ],
    "Customer": [
        {"name": "address", "type": "address"},
        {"name": "discount", "type": "uint256"},
    ],
    "Seller": [
        {"name": "address", "type": "address"},
        {"name": "price", "type": "uint256"},
    ],
}

MAIL_TYPES = {
    "Person": [
        {"name": "name", "type": "string"},
        {"name": "wallet", "type": "address"},
    ],
    "Mail": [
        {"name": "from", "type": "Person"},
        {"name": "to", "type": "Person"},
        {"name": "contents", "type": "string"},
    ],
}


class TestFieldTypeParsing:

    def test_split_array_type(self):
        assert split_array_type("uint256") is None
        assert split_array_type("Customer[]") == ("Customer", None)
        assert split_array_type("Customer[3]") == ("Customer", 3)
        assert split_array_type("Customer[][2]") == ("Customer[]", 2)

    def test_parse_field_type_dimensions(self):
        assert parse_field_type("uint256") == ("uint256", ())
        assert parse_field_type("Customer[]") == ("Customer", (None,))
        assert parse_field_type("bytes32[3][]") == ("bytes32", (3, None))

    @pytest.mark.parametrize("type_name", ["address", "bool", "uint8", "uint256", "int128", "bytes1", "bytes32"])
    def test_atomic_types(self, type_name):
        assert is_atomic_type(type_name)

    @pytest.mark.parametrize("type_name", ["uint", "uint7", "uint264", "bytes0", "bytes33", "string", "Person"])
    def test_non_atomic_types(self, type_name):
        assert not is_atomic_type(type_name)


class TestEncodeType:

    def test_nested_struct_canonical_string(self):
        registry = TypeRegistry.from_types(FIRST_STRUCT_TYPES)
        assert encode_type("FirstStruct", registry) == (
            "FirstStruct(address owner,Customer[] customer,Seller seller,uint256 price)"
            "Customer(address address,uint256 discount)"
            "Seller(address address,uint256 price)"
        )

    def test_dependencies_sorted_regardless_of_declaration_order(self):
        reordered = {name: FIRST_STRUCT_TYPES[name] for name in ("Seller", "Customer", "FirstStruct")}
        registry = TypeRegistry.from_types(reordered)
        assert encode_type("FirstStruct", registry).startswith(
            "FirstStruct(address owner,Customer[] customer,Seller seller,uint256 price)Customer("
        )

    def test_shared_dependency_listed_once(self):
        registry = TypeRegistry.from_types(MAIL_TYPES)
        assert encode_type("Mail", registry) == (
            "Mail(Person from,Person to,string contents)Person(string name,address wallet)"
        )

    def test_mail_type_hash_matches_published_value(self):
        registry = TypeRegistry.from_types(MAIL_TYPES)
        assert hash_type("Mail", registry).hex() == (
            "a0cedeb2dc280ba39b857546d74f5549c3a1d7bdc2dd96bf881f76108e23dac2"
        )

    def test_transitive_dependencies_included(self):
        registry = TypeRegistry.from_types({
            "Order": [{"name": "item", "type": "Item"}],
            "Item": [{"name": "price", "type": "Price[2]"}],
            "Price": [{"name": "amount", "type": "uint256"}],
        })
        assert find_dependencies("Order", registry) == {"Item", "Price"}
        assert encode_type("Order", registry) == (
            "Order(Item item)Item(Price[2] price)Price(uint256 amount)"
        )

    def test_permuted_fields_change_type_hash(self):
        original = TypeRegistry.from_types({
            "Permit": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
                {"name": "value", "type": "uint256"},
            ],
        })
        permuted = TypeRegistry.from_types({
            "Permit": [
                {"name": "spender", "type": "address"},
                {"name": "owner", "type": "address"},
                {"name": "value", "type": "uint256"},
            ],
        })
        assert hash_type("Permit", original) != hash_type("Permit", permuted)

    def test_type_hash_is_keccak_of_type_string(self):
        registry = TypeRegistry.from_types(FIRST_STRUCT_TYPES)
        expected = keccak256(encode_type("FirstStruct", registry).encode("utf-8"))
        assert hash_type("FirstStruct", registry) == expected

    def test_eip712_domain_entry_skipped(self):
        types = dict(MAIL_TYPES)
        types["EIP712Domain"] = [{"name": "name", "type": "string"}]
        registry = TypeRegistry.from_types(types)
        assert "EIP712Domain" not in registry
        assert set(registry.to_types()) == {"Person", "Mail"}


class TestRegistryErrors:

    def test_undefined_referenced_type(self):
        registry = TypeRegistry.from_types({"Mail": [{"name": "from", "type": "Person"}]})
        with pytest.raises(UndefinedTypeError) as exc_info:
            encode_type("Mail", registry)
        assert exc_info.value.type_name == "Person"
        assert exc_info.value.referenced_by == "Mail"

    def test_undefined_primary_type(self):
        with pytest.raises(UndefinedTypeError):
            encode_type("Missing", TypeRegistry())

    def test_unsized_integer_is_undefined(self):
        registry = TypeRegistry.from_types({"Bad": [{"name": "x", "type": "uint"}]})
        with pytest.raises(UndefinedTypeError):
            encode_type("Bad", registry)

    def test_self_reference_is_cycle(self):
        registry = TypeRegistry.from_types({"Node": [{"name": "next", "type": "Node"}]})
        with pytest.raises(CyclicTypeError) as exc_info:
            encode_type("Node", registry)
        assert exc_info.value.cycle == ["Node", "Node"]

    def test_indirect_cycle_through_array(self):
        registry = TypeRegistry.from_types({
            "A": [{"name": "b", "type": "B"}],
            "B": [{"name": "a", "type": "A[]"}],
        })
        with pytest.raises(CyclicTypeError) as exc_info:
            find_dependencies("A", registry)
        assert exc_info.value.cycle == ["A", "B", "A"]

    def test_duplicate_field_rejected(self):
        with pytest.raises(TypeEncodingError):
            StructDefinition(name="Dup", fields=(StructField("a", "uint256"), StructField("a", "bool")))

    def test_struct_name_shadowing_primitive_rejected(self):
        with pytest.raises(TypeEncodingError):
            StructDefinition(name="uint256", fields=())

    def test_malformed_member_list(self):
        with pytest.raises(TypeEncodingError):
            TypeRegistry.from_types({"Bad": [{"name": "x"}]})
