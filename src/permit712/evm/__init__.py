from .standards import (
    EIP712_DOMAIN_TYPE_STRING,
    EIP712_DOMAIN_TYPEHASH,
    PERMIT_TYPES,
    PERMIT_TYPE_STRING,
    PERMIT_TYPEHASH,
    EIP712Domain,
    PermitMessage,
    PermitTypedData,
    build_permit_typed_data,
)
from .schemas import EVMECDSASignature, EIP2612Permit, EVMVerificationResult
from .signatures import sign_digest, sign_permit, sign_typed_data
from .verifies import verify_eip2612_permit, verify_permit, verify_typed_data
from .constants import (
    EvmAssetConfig,
    EvmChainConfig,
    get_asset_config,
    get_chain_config,
    get_token_domain,
    parse_caip2_chain_id,
)

__all__ = [
    "EIP712_DOMAIN_TYPE_STRING",
    "EIP712_DOMAIN_TYPEHASH",
    "PERMIT_TYPES",
    "PERMIT_TYPE_STRING",
    "PERMIT_TYPEHASH",
    "EIP712Domain",
    "PermitMessage",
    "PermitTypedData",
    "build_permit_typed_data",
    "EVMECDSASignature",
    "EIP2612Permit",
    "EVMVerificationResult",
    "sign_digest",
    "sign_permit",
    "sign_typed_data",
    "verify_eip2612_permit",
    "verify_permit",
    "verify_typed_data",
    "EvmAssetConfig",
    "EvmChainConfig",
    "get_asset_config",
    "get_chain_config",
    "get_token_domain",
    "parse_caip2_chain_id",
]
