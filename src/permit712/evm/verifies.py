"""
EVM Signature Verification

Off-chain verification of EIP-712 typed data signatures and EIP-2612
permits.  Verification never raises for a bad signature: every failure is
reported as an ``EVMVerificationResult`` with ``is_valid=False`` and a
``VerificationStatus`` describing the first check that failed.
"""

import logging
import time
from typing import Any, Dict, Mapping, Optional, Union

from ..engine.exceptions import InvalidValueError, SignatureError, TypeEncodingError
from ..eip712.digest import SignatureLike, hash_typed_data, recover_address
from ..eip712.hashing import encode_address, parse_integer
from ..schemas.bases import VerificationStatus
from .schemas import EIP2612Permit, EVMECDSASignature, EVMVerificationResult
from .standards import build_permit_typed_data

logger = logging.getLogger(__name__)


def _is_valid_evm_address(addr: Optional[str]) -> bool:
    """
    Check whether ``addr`` is a usable EVM address.

    Accepts 0x-prefixed, 42-character hex strings; mixed-case strings must
    carry a valid EIP-55 checksum.
    """
    if not (isinstance(addr, str) and addr.startswith("0x") and len(addr) == 42):
        return False
    try:
        encode_address(addr)
    except ValueError:
        return False
    return True


def _uint256_or_none(value: Any) -> Optional[int]:
    try:
        number = parse_integer(value)
    except InvalidValueError:
        return None
    return number if 0 <= number < 2 ** 256 else None


def _text_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _as_signature(signature: Union[EVMECDSASignature, SignatureLike]) -> SignatureLike:
    if isinstance(signature, EVMECDSASignature):
        return signature.to_parsed()
    return signature


def verify_typed_data(
    full_message: Mapping[str, Any],
    signature: Union[EVMECDSASignature, SignatureLike],
    expected_signer: str,
    *,
    reject_high_s: bool = False,
) -> EVMVerificationResult:
    """
    Verify a signature over a ``{types, primaryType, domain, message}`` payload.

    Returns:
        ``EVMVerificationResult`` with ``status``:

        * ``SUCCESS`` when the signature recovers to ``expected_signer``;
        * ``INVALID_MESSAGE`` when the payload does not encode;
        * ``INVALID_SIGNATURE`` for a malformed signature or another signer.
    """

    def _fail(status: VerificationStatus, message: str, error_details: Optional[Dict[str, Any]] = None,
              **extra: Any) -> EVMVerificationResult:
        logger.info("Typed data verification failed: %s", message)
        return EVMVerificationResult(
            status=status,
            is_valid=False,
            message=message,
            error_details=error_details,
            signer=_text_or_none(expected_signer),
            **extra,
        )

    if not _is_valid_evm_address(expected_signer):
        return _fail(
            VerificationStatus.INVALID_SIGNATURE,
            "Invalid expected signer address format.",
            {"expected_signer": expected_signer},
        )

    try:
        digest = hash_typed_data(full_message)
    except (TypeEncodingError, ValueError) as exc:
        return _fail(VerificationStatus.INVALID_MESSAGE, f"Typed data could not be encoded: {exc}",
                     {"error": str(exc)})

    digest_hex = "0x" + digest.hex()
    try:
        recovered = recover_address(digest, _as_signature(signature), reject_high_s=reject_high_s)
    except (SignatureError, ValueError) as exc:
        return _fail(VerificationStatus.INVALID_SIGNATURE, f"Malformed signature: {exc}",
                     {"error": str(exc)}, digest=digest_hex)

    if encode_address(recovered) != encode_address(expected_signer):
        return _fail(
            VerificationStatus.INVALID_SIGNATURE,
            "Recovered signer does not match the expected signer.",
            {"expected": expected_signer, "recovered": recovered},
            digest=digest_hex,
            recovered_signer=recovered,
        )

    return EVMVerificationResult(
        status=VerificationStatus.SUCCESS,
        is_valid=True,
        message="Signature verified.",
        signer=expected_signer,
        recovered_signer=recovered,
        digest=digest_hex,
    )


def verify_permit(
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
    signature: Union[EVMECDSASignature, SignatureLike],
    on_chain_nonce: Optional[int] = None,
    current_time: Optional[int] = None,
    reject_high_s: bool = False,
) -> EVMVerificationResult:
    """
    Verify an EIP-2612 ``permit()`` signed by an EOA.

    Performs the following checks in order, returning on the first failure:

    1. **Address format** -- ``owner``, ``spender`` and ``token`` must be
       0x-prefixed, 42-character addresses.
    2. **Deadline** -- ``current_time <= deadline``, as ``permit()`` requires.
       ``deadline``, ``nonce`` and ``on_chain_nonce`` may be ints or decimal
       / 0x-hex strings; anything else is ``INVALID_MESSAGE``.
    3. **Nonce** -- when ``on_chain_nonce`` is supplied it must equal
       ``nonce``; a mismatch means the permit was already used or is stale.
    4. **ECDSA recovery** -- rebuilds the EIP-712 digest from the supplied
       fields and recovers the signer, which must equal ``owner``.

    Args:
        owner:          Token owner who signed the permit.
        spender:        Address allowed to spend.
        token:          ERC-20 token contract address (the ``verifyingContract``).
        value:          Allowance in the token's smallest unit.
        nonce:          Nonce the permit was signed with.
        deadline:       Unix timestamp after which the permit is invalid.
        chain_id:       EVM network ID.
        domain_name:    EIP-712 domain ``name`` of the token.
        domain_version: EIP-712 domain ``version`` of the token.
        signature:      ``EVMECDSASignature``, 65-byte or 64-byte compact signature.
        on_chain_nonce: Optional current ``nonces(owner)`` read from the token.
        current_time:   Optional Unix timestamp; defaults to ``int(time.time())``.
        reject_high_s:  Reject malleable high-s signatures.

    Returns:
        ``EVMVerificationResult``; ``is_valid=True`` and ``status=SUCCESS``
        only when every check passes.
    """
    details = {"on_chain_nonce": on_chain_nonce} if on_chain_nonce is not None else None

    def _fail(
        status: VerificationStatus,
        message: str,
        error_details: Optional[Dict[str, Any]] = None,
        **extra: Any,
    ) -> EVMVerificationResult:
        logger.info("Permit verification failed for owner %s: %s", owner, message)
        return EVMVerificationResult(
            status=status,
            is_valid=False,
            message=message,
            error_details=error_details,
            signer=_text_or_none(owner),
            spender=_text_or_none(spender),
            authorized_amount=_uint256_or_none(value),
            details=details,
            **extra,
        )

    # ------------------------------------------------------------------
    # 1. Address format
    # ------------------------------------------------------------------
    for field_name, address in (("token", token), ("owner", owner), ("spender", spender)):
        if not _is_valid_evm_address(address):
            return _fail(
                VerificationStatus.INVALID_SIGNATURE,
                f"Invalid {field_name} address format.",
                {field_name: address},
            )

    # ------------------------------------------------------------------
    # 2. Deadline
    # ------------------------------------------------------------------
    try:
        now = parse_integer(current_time, "current_time") if current_time is not None else int(time.time())
        deadline_value = parse_integer(deadline, "deadline")
        nonce_value = parse_integer(nonce, "nonce")
        expected_nonce = parse_integer(on_chain_nonce, "on_chain_nonce") if on_chain_nonce is not None else None
    except InvalidValueError as exc:
        return _fail(VerificationStatus.INVALID_MESSAGE, f"Permit could not be encoded: {exc}",
                     {"error": str(exc)})

    if now > deadline_value:
        return _fail(
            VerificationStatus.EXPIRED,
            f"Permit expired: current_time={now} > deadline={deadline}.",
            {"current_time": now, "deadline": deadline},
        )

    # ------------------------------------------------------------------
    # 3. Nonce
    # ------------------------------------------------------------------
    if expected_nonce is not None and expected_nonce != nonce_value:
        return _fail(
            VerificationStatus.REPLAY_ATTACK,
            f"Nonce mismatch: permit nonce={nonce}, on-chain nonce={on_chain_nonce}.",
            {"nonce": nonce, "on_chain_nonce": on_chain_nonce},
        )

    # ------------------------------------------------------------------
    # 4. Signature
    # ------------------------------------------------------------------
    try:
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
        digest = typed_data.digest()
    except (TypeEncodingError, ValueError) as exc:
        return _fail(VerificationStatus.INVALID_MESSAGE, f"Permit could not be encoded: {exc}",
                     {"error": str(exc)})

    digest_hex = "0x" + digest.hex()
    try:
        recovered = recover_address(digest, _as_signature(signature), reject_high_s=reject_high_s)
    except (SignatureError, ValueError) as exc:
        return _fail(VerificationStatus.INVALID_SIGNATURE, f"Malformed signature: {exc}",
                     {"error": str(exc)}, digest=digest_hex)

    if encode_address(recovered) != encode_address(owner):
        return _fail(
            VerificationStatus.INVALID_SIGNATURE,
            "Recovered signer does not match the permit owner.",
            {"expected": owner, "recovered": recovered},
            digest=digest_hex,
            recovered_signer=recovered,
        )

    logger.debug("Permit from %s to %s verified (digest %s)", owner, spender, digest_hex)
    return EVMVerificationResult(
        status=VerificationStatus.SUCCESS,
        is_valid=True,
        message="Permit signature verified.",
        signer=owner,
        recovered_signer=recovered,
        spender=spender,
        authorized_amount=_uint256_or_none(value),
        digest=digest_hex,
        details=details,
    )


def verify_eip2612_permit(
    permit: EIP2612Permit,
    *,
    domain_name: str,
    domain_version: str,
    on_chain_nonce: Optional[int] = None,
    current_time: Optional[int] = None,
    reject_high_s: bool = False,
) -> EVMVerificationResult:
    """``verify_permit`` for a signed ``EIP2612Permit`` model."""
    if permit.signature is None:
        return EVMVerificationResult(
            status=VerificationStatus.INVALID_SIGNATURE,
            is_valid=False,
            message="Permit carries no signature.",
            signer=permit.owner,
            spender=permit.spender,
            authorized_amount=permit.value,
        )
    return verify_permit(
        owner=permit.owner,
        spender=permit.spender,
        token=permit.token,
        value=permit.value,
        nonce=permit.nonce,
        deadline=permit.deadline,
        chain_id=permit.chain_id,
        domain_name=domain_name,
        domain_version=domain_version,
        signature=permit.signature,
        on_chain_nonce=on_chain_nonce,
        current_time=current_time,
        reject_high_s=reject_high_s,
    )
