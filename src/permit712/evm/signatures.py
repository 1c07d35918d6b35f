"""
EVM Off-Chain Signing Utilities

Local EIP-712 signing helpers for generic typed data and EIP-2612
``permit()``.  All cryptographic operations are performed in-process using
``eth_account`` and ``eth_keys``; no RPC calls or on-chain state queries are
made.

Exported helpers
----------------
sign_typed_data
    Sign a ``signTypedData`` payload and return an ``EVMECDSASignature``.
    The payload is hashed by this library first, so malformed values are
    rejected before ``eth_account`` sees them.

sign_permit
    Build the EIP-2612 payload, sign it and return a complete
    ``EIP2612Permit`` with v, r, s and all permit fields.

sign_digest
    Sign a raw 32-byte digest (e.g. one produced by ``build_digest``).

When no private key is passed, ``PERMIT712_PRIVATE_KEY`` is used.
"""

import logging
from typing import Any, Literal, Mapping, Optional, Union

from eth_account import Account
from eth_keys import keys

from ..config import get_private_key_from_env
from ..engine.exceptions import ConfigurationError, SignatureError
from ..eip712.digest import ParsedSignature, hash_typed_data
from ..eip712.hashing import encode_address
from .schemas import EIP2612Permit, EVMECDSASignature
from .standards import build_permit_typed_data

logger = logging.getLogger(__name__)

PrivateKeyLike = Union[str, bytes]


def _resolve_private_key(private_key: Optional[PrivateKeyLike]) -> PrivateKeyLike:
    if private_key:
        return private_key
    env_key = get_private_key_from_env()
    if not env_key:
        raise ConfigurationError(
            "No private key supplied and PERMIT712_PRIVATE_KEY is not set"
        )
    return env_key


def _load_account(private_key: Optional[PrivateKeyLike]):
    try:
        return Account.from_key(_resolve_private_key(private_key))
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(f"Invalid private key: {exc}") from exc


def sign_digest(
    digest: bytes,
    private_key: Optional[PrivateKeyLike] = None,
    *,
    signature_type: Literal["EIP712", "EIP2612"] = "EIP712",
) -> EVMECDSASignature:
    """
    Sign a precomputed 32-byte EIP-712 digest.

    The signature is deterministic (RFC 6979) and always low-s, so it can
    be converted to the EIP-2098 compact form.

    Args:
        digest:         32-byte signing digest.
        private_key:    Hex-encoded secp256k1 private key (``0x`` optional)
                        or raw 32 bytes.  Defaults to ``PERMIT712_PRIVATE_KEY``.
        signature_type: Label stored on the returned signature.

    Raises:
        ValueError: If ``digest`` is not 32 bytes.
        ConfigurationError: If no usable private key is available.
    """
    if len(digest) != 32:
        raise ValueError(f"digest must be 32 bytes, got {len(digest)}")

    account = _load_account(private_key)
    signed = keys.PrivateKey(bytes(account.key)).sign_msg_hash(bytes(digest))
    logger.debug("Signed digest 0x%s with %s", bytes(digest).hex(), account.address)
    return EVMECDSASignature.from_signature(
        ParsedSignature(v=signed.v + 27, r=signed.r, s=signed.s),
        signature_type=signature_type,
    )


def sign_typed_data(
    full_message: Mapping[str, Any],
    private_key: Optional[PrivateKeyLike] = None,
    *,
    signature_type: Literal["EIP712", "EIP2612"] = "EIP712",
) -> EVMECDSASignature:
    """
    Sign a ``{types, primaryType, domain, message}`` payload.

    Signing goes through ``eth_account.Account.sign_typed_data``; the hash
    it signed is checked against ``hash_typed_data`` so the signature always
    covers the digest this library verifies.

    Raises:
        TypeEncodingError: The payload does not encode.
        SignatureError: ``eth_account`` signed a different digest.
        ConfigurationError: If no usable private key is available.
    """
    digest = hash_typed_data(full_message)
    account = _load_account(private_key)

    signed = Account.sign_typed_data(account.key, full_message=dict(full_message))
    if bytes(signed.message_hash) != digest:
        raise SignatureError(
            f"eth_account signed 0x{bytes(signed.message_hash).hex()}, expected 0x{digest.hex()}"
        )

    logger.debug("Signed %s typed data with %s", full_message.get("primaryType"), account.address)
    return EVMECDSASignature(
        signature_type=signature_type,
        v=signed.v,
        r="0x" + signed.r.to_bytes(32, "big").hex(),
        s="0x" + signed.s.to_bytes(32, "big").hex(),
    )


def sign_permit(
    *,
    owner: str,
    spender: str,
    token: str,
    value: int,
    nonce: int,
    deadline: int,
    chain_id: int,
    domain_name: str,
    domain_version: str,
    private_key: Optional[PrivateKeyLike] = None,
) -> EIP2612Permit:
    """
    Sign an EIP-2612 ``permit()`` payload and return a complete
    ``EIP2612Permit`` with the signature attached.

    Args:
        owner:          Token owner; must match the address of ``private_key``.
        spender:        Address allowed to spend.
        token:          ERC-20 token contract address (the ``verifyingContract``).
        value:          Allowance in the token's smallest unit.
        nonce:          Current ``nonces(owner)`` of the token.
        deadline:       Unix timestamp after which the permit is invalid.
        chain_id:       EVM network ID (e.g. ``1`` Mainnet, ``8453`` Base).
        domain_name:    EIP-712 domain ``name`` exactly as registered in the
                        token contract (e.g. ``"USD Coin"`` for USDC).
        domain_version: EIP-712 domain ``version`` string (e.g. ``"2"``).
        private_key:    Owner's key.  Defaults to ``PERMIT712_PRIVATE_KEY``.

    Returns:
        ``EIP2612Permit`` with ``signature`` populated (v, r, s).

    Raises:
        ValueError: If ``owner`` is not the address of ``private_key``.

    Example::

        permit = sign_permit(
            owner="0xYourAddress",
            spender="0xSpenderAddress",
            token="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            value=1_000_000,            # 1 USDC (6 decimals)
            nonce=0,
            deadline=1_900_000_000,
            chain_id=1,
            domain_name="USD Coin",
            domain_version="2",
            private_key="0xYOUR_PRIVATE_KEY",
        )
    """
    account = _load_account(private_key)
    if encode_address(owner) != encode_address(account.address):
        raise ValueError(f"owner {owner} does not match the signing key address {account.address}")

    typed_data = build_permit_typed_data(
        owner=owner,
        spender=spender,
        value=value,
        nonce=nonce,
        deadline=deadline,
        chain_id=chain_id,
        verifying_contract=token,
        domain_name=domain_name,
        domain_version=domain_version,
    )
    signature = sign_typed_data(typed_data.to_dict(), account.key, signature_type="EIP2612")

    return EIP2612Permit(
        owner=owner,
        spender=spender,
        token=token,
        value=value,
        nonce=nonce,
        deadline=deadline,
        chain_id=chain_id,
        signature=signature,
    )
