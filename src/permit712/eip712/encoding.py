"""
EIP-712 Type Encoding

Struct definitions, the type registry and the canonical ``encodeType``
string of EIP-712.

A struct is encoded as ``Name(type1 field1,type2 field2,...)``.  The
encoding of a primary type is its own encoding followed directly by the
encodings of every struct it references (directly, through arrays, or
transitively), sorted alphabetically by name and listed once each::

    FirstStruct(address owner,Customer[] customer,Seller seller,uint256 price)
    Customer(address address,uint256 discount)
    Seller(address address,uint256 price)

(shown on three lines, produced as one string).

Recursive struct references are not supported: a cycle in the reference
graph raises ``CyclicTypeError``.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from ..engine.exceptions import CyclicTypeError, TypeEncodingError, UndefinedTypeError


_ARRAY_SUFFIX = re.compile(r"\[(\d*)\]$")
INTEGER_TYPE_PATTERN = re.compile(r"^(u?int)(\d+)$")
FIXED_BYTES_TYPE_PATTERN = re.compile(r"^bytes(\d+)$")
_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

#: Types hashed with keccak256 before being placed in the encoding.
DYNAMIC_TYPES = frozenset({"string", "bytes"})


def split_array_type(type_str: str) -> Optional[Tuple[str, Optional[int]]]:
    """
    Split the outermost array dimension off a field type.

    ``"Customer[][2]"`` is a fixed array of two dynamic ``Customer[]``
    arrays, so the outermost dimension is the last suffix.

    Returns:
        ``(inner_type, length)`` where ``length`` is ``None`` for dynamic
        arrays, or ``None`` when ``type_str`` is not an array type.
    """
    match = _ARRAY_SUFFIX.search(type_str)
    if match is None:
        return None
    length = int(match.group(1)) if match.group(1) else None
    return type_str[:match.start()], length


def parse_field_type(type_str: str) -> Tuple[str, Tuple[Optional[int], ...]]:
    """
    Parse a field type into its base type and array dimensions.

    Dimensions are returned in textual (left-to-right) order, ``None``
    marking a dynamic dimension::

        parse_field_type("uint256")        # ("uint256", ())
        parse_field_type("Customer[]")     # ("Customer", (None,))
        parse_field_type("bytes32[3][]")   # ("bytes32", (3, None))
    """
    dims: List[Optional[int]] = []
    remaining = type_str.strip()
    while True:
        split = split_array_type(remaining)
        if split is None:
            break
        remaining, length = split
        dims.append(length)
    if not remaining:
        raise UndefinedTypeError(type_str)
    return remaining, tuple(reversed(dims))


def is_atomic_type(base_type: str) -> bool:
    """Return True for fixed-size primitives encoded directly into a 32-byte word."""
    if base_type in ("address", "bool"):
        return True
    match = INTEGER_TYPE_PATTERN.match(base_type)
    if match:
        bits = int(match.group(2))
        return 8 <= bits <= 256 and bits % 8 == 0
    match = FIXED_BYTES_TYPE_PATTERN.match(base_type)
    if match:
        return 1 <= int(match.group(1)) <= 32
    return False


def is_dynamic_type(base_type: str) -> bool:
    return base_type in DYNAMIC_TYPES


def is_primitive_type(base_type: str) -> bool:
    return is_atomic_type(base_type) or is_dynamic_type(base_type)


@dataclass(frozen=True)
class StructField:
    """A single ``type name`` member of a struct definition."""

    name: str
    type: str

    @property
    def base_type(self) -> str:
        return parse_field_type(self.type)[0]

    def encode(self) -> str:
        return f"{self.type} {self.name}"

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.type}


@dataclass(frozen=True)
class StructDefinition:
    """
    Ordered field list of an EIP-712 struct type.

    Field order is significant: the same order is used for the type string
    and for value encoding, so permuting fields changes the type hash.

    Attributes:
        name: Struct type name (e.g. ``"Permit"``).
        fields: Members in declaration order.
    """

    name: str
    fields: Tuple[StructField, ...]

    def __post_init__(self):
        if not _IDENTIFIER.match(self.name):
            raise TypeEncodingError(f"Invalid struct name: {self.name!r}")
        if is_primitive_type(self.name):
            raise TypeEncodingError(f"Struct name {self.name!r} shadows a primitive type")
        # Accept any iterable of fields but store a tuple.
        object.__setattr__(self, "fields", tuple(self.fields))
        seen: Set[str] = set()
        for field in self.fields:
            if field.name in seen:
                raise TypeEncodingError(f"Duplicate field {field.name!r} in struct {self.name!r}")
            seen.add(field.name)

    @classmethod
    def from_members(cls, name: str, members: Iterable[Mapping[str, str]]) -> "StructDefinition":
        """Build from the ``[{"name": ..., "type": ...}, ...]`` form used by ``signTypedData``."""
        try:
            fields = tuple(StructField(name=m["name"], type=m["type"]) for m in members)
        except (KeyError, TypeError) as exc:
            raise TypeEncodingError(f"Malformed member list for struct {name!r}: {exc}") from exc
        return cls(name=name, fields=fields)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(field.name for field in self.fields)

    def encode(self) -> str:
        """Encode this struct alone, without its dependencies."""
        return f"{self.name}({','.join(field.encode() for field in self.fields)})"

    def to_members(self) -> List[Dict[str, str]]:
        return [field.to_dict() for field in self.fields]


class TypeRegistry(Mapping[str, StructDefinition]):
    """
    Name -> ``StructDefinition`` lookup used to resolve struct references.

    The registry is immutable once built; canonical type strings are
    memoised per primary type.

    Example::

        registry = TypeRegistry.from_types({
            "Permit": [
                {"name": "owner", "type": "address"},
                {"name": "spender", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "nonce", "type": "uint256"},
                {"name": "deadline", "type": "uint256"},
            ],
        })
        registry.encode_type("Permit")
    """

    def __init__(self, definitions: Iterable[StructDefinition] = ()):
        self._definitions: Dict[str, StructDefinition] = {}
        for definition in definitions:
            if definition.name in self._definitions:
                raise TypeEncodingError(f"Struct {definition.name!r} defined twice")
            self._definitions[definition.name] = definition
        self._encoded: Dict[str, str] = {}

    @classmethod
    def from_types(
        cls,
        types: Mapping[str, Sequence[Mapping[str, str]]],
        *,
        exclude: Iterable[str] = ("EIP712Domain",),
    ) -> "TypeRegistry":
        """
        Build a registry from a ``signTypedData`` ``types`` mapping.

        The ``EIP712Domain`` entry is skipped by default: the domain type is
        derived from the domain descriptor itself.
        """
        skipped = set(exclude)
        return cls(
            StructDefinition.from_members(name, members)
            for name, members in types.items()
            if name not in skipped
        )

    def to_types(self) -> Dict[str, List[Dict[str, str]]]:
        return {name: definition.to_members() for name, definition in self._definitions.items()}

    def __getitem__(self, name: str) -> StructDefinition:
        return self._definitions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def resolve(self, type_name: str, referenced_by: Optional[str] = None) -> StructDefinition:
        try:
            return self._definitions[type_name]
        except KeyError:
            raise UndefinedTypeError(type_name, referenced_by) from None

    def find_dependencies(self, primary_type: str) -> Set[str]:
        """
        Collect every struct reachable from ``primary_type``, excluding itself.

        Raises:
            UndefinedTypeError: A referenced type is neither primitive nor registered.
            CyclicTypeError: The reference graph reachable from ``primary_type`` has a cycle.
        """
        found: Set[str] = set()
        self._visit(primary_type, None, [], found)
        found.discard(primary_type)
        return found

    def _visit(self, type_name: str, referenced_by: Optional[str], path: List[str], found: Set[str]) -> None:
        if type_name in path:
            raise CyclicTypeError(path[path.index(type_name):] + [type_name])
        if type_name in found:
            return
        definition = self.resolve(type_name, referenced_by)
        path.append(type_name)
        for field in definition.fields:
            base = field.base_type
            if is_primitive_type(base):
                continue
            self._visit(base, type_name, path, found)
        path.pop()
        found.add(type_name)

    def encode_type(self, primary_type: str) -> str:
        """Canonical type string of ``primary_type`` followed by its sorted dependencies."""
        encoded = self._encoded.get(primary_type)
        if encoded is None:
            dependencies = sorted(self.find_dependencies(primary_type))
            encoded = self.resolve(primary_type).encode() + "".join(
                self._definitions[name].encode() for name in dependencies
            )
            self._encoded[primary_type] = encoded
        return encoded


def encode_type(primary_type: str, registry: TypeRegistry) -> str:
    return registry.encode_type(primary_type)


def find_dependencies(primary_type: str, registry: TypeRegistry) -> Set[str]:
    return registry.find_dependencies(primary_type)
