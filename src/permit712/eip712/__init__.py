from .encoding import (
    StructField,
    StructDefinition,
    TypeRegistry,
    encode_type,
    find_dependencies,
    parse_field_type,
    split_array_type,
    is_atomic_type,
    is_dynamic_type,
)
from .hashing import (
    keccak256,
    hash_type,
    encode_address,
    encode_value,
    encode_data,
    hash_struct,
)
from .domain import (
    DomainDescriptor,
    build_domain_separator,
    cached_domain_separator,
    clear_domain_separator_cache,
    domain_struct_definition,
    domain_type_string,
    domain_type_hash,
)
from .digest import (
    EIP191_STRUCTURED_DATA_PREFIX,
    ParsedSignature,
    build_digest,
    ensure_signer,
    digest_from_hashes,
    hash_typed_data,
    normalize_v,
    parse_signature,
    to_compact_signature,
    to_expanded_signature,
    recover_address,
    recover_typed_data_signer,
    verify,
    verify_digest,
)

__all__ = [
    "StructField",
    "StructDefinition",
    "TypeRegistry",
    "encode_type",
    "find_dependencies",
    "parse_field_type",
    "split_array_type",
    "is_atomic_type",
    "is_dynamic_type",
    "keccak256",
    "hash_type",
    "encode_address",
    "encode_value",
    "encode_data",
    "hash_struct",
    "DomainDescriptor",
    "build_domain_separator",
    "cached_domain_separator",
    "clear_domain_separator_cache",
    "domain_struct_definition",
    "domain_type_string",
    "domain_type_hash",
    "EIP191_STRUCTURED_DATA_PREFIX",
    "ParsedSignature",
    "build_digest",
    "ensure_signer",
    "digest_from_hashes",
    "hash_typed_data",
    "normalize_v",
    "parse_signature",
    "to_compact_signature",
    "to_expanded_signature",
    "recover_address",
    "recover_typed_data_signer",
    "verify",
    "verify_digest",
]
