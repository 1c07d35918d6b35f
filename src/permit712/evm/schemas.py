"""
EVM Schema Models

Pydantic models for EIP-712 signatures, EIP-2612 permits and verification
results.  All classes inherit from the base schema hierarchy in
``schemas.bases``.

Signature classes:
    - EVMECDSASignature: v/r/s signature for EIP-712 typed data
      (use ``signature_type`` to distinguish generic EIP-712 from EIP-2612).

Permit classes:
    - EIP2612Permit: EIP-2612 ``permit()`` authorization (owner, spender,
      value, nonce, deadline) with its embedded signature.

Result classes:
    - EVMVerificationResult: Verification outcome for typed data and permits.
"""

from typing import Optional, Dict, Any, Literal, Union

from pydantic import Field

from ..schemas.bases import (
    BaseSignature,
    BasePermit,
    BaseVerificationResult,
)
from ..eip712.digest import ParsedSignature, parse_signature
from .standards import PermitTypedData, build_permit_typed_data


def _strip_hex(value: str) -> str:
    return value[2:] if value[:2].lower() == "0x" else value


class EVMECDSASignature(BaseSignature):
    """
    EVM ECDSA signature (v, r, s) over an EIP-712 digest.

    Use ``signature_type`` to identify what was signed:

    * ``"EIP712"``: generic typed data.
    * ``"EIP2612"``: EIP-2612 ``permit()`` typed data.

    Attributes:
        signature_type: ``"EIP712"`` or ``"EIP2612"``.
        v: ECDSA recovery ID (27 or 28).
        r: r component, 32 bytes as a 64-char hex string (0x prefix optional).
        s: s component, 32 bytes as a 64-char hex string (0x prefix optional).

    Example::

        sig = EVMECDSASignature(signature_type="EIP2612", v=27, r="0x" + "a" * 64, s="0x" + "b" * 64)
        sig.validate_format()
    """

    signature_type: Literal["EIP712", "EIP2612"] = Field(
        default="EIP712", description="Signed payload: 'EIP712' or 'EIP2612'"
    )
    v: int = Field(..., ge=27, le=28, description="ECDSA recovery ID (27 or 28)")
    r: str = Field(..., description="Signature r component (32 bytes, 64-char hex, 0x prefix optional)")
    s: str = Field(..., description="Signature s component (32 bytes, 64-char hex, 0x prefix optional)")

    @classmethod
    def from_signature(
        cls,
        signature: Union[bytes, str, ParsedSignature],
        signature_type: Literal["EIP712", "EIP2612"] = "EIP712",
    ) -> "EVMECDSASignature":
        """
        Build from a 65-byte, 64-byte compact or parsed signature.

        Raises:
            InvalidSignatureLengthError: Raw signature is not 64 or 65 bytes.
            InvalidSignatureError: Recovery id cannot be normalised.
        """
        parsed = parse_signature(signature)
        return cls(
            signature_type=signature_type,
            v=parsed.v,
            r="0x" + parsed.r.to_bytes(32, "big").hex(),
            s="0x" + parsed.s.to_bytes(32, "big").hex(),
        )

    def validate_format(self) -> bool:
        """
        Validate v/r/s components.

        Checks v is 27 or 28 and that r/s are valid 64-character hex strings
        (0x prefix stripped before length check).

        Returns:
            True when all components pass.

        Raises:
            ValueError: Descriptive message on the first failed check.
        """
        if self.v not in (27, 28):
            raise ValueError(f"Invalid recovery ID: {self.v}. Must be 27 or 28")

        for name, val in [("r", self.r), ("s", self.s)]:
            hex_str = _strip_hex(val)
            if len(hex_str) != 64:
                raise ValueError(f"Invalid {name}: expected 64 hex chars, got {len(hex_str)}")
            try:
                int(hex_str, 16)
            except ValueError:
                raise ValueError(f"Invalid {name}: not valid hexadecimal")

        return True

    def to_parsed(self) -> ParsedSignature:
        self.validate_format()
        return ParsedSignature(v=self.v, r=int(_strip_hex(self.r), 16), s=int(_strip_hex(self.s), 16))

    def to_bytes(self) -> bytes:
        """65-byte ``r || s || v`` signature."""
        return self.to_parsed().to_bytes()

    def to_packed_hex(self) -> str:
        """
        Encode v/r/s into a packed 65-byte hex string (``r || s || v``).

        Returns:
            0x-prefixed 132-character hex string.

        Raises:
            ValueError: If components do not pass ``validate_format()``.
        """
        return "0x" + self.to_bytes().hex()

    def to_compact_hex(self) -> str:
        """
        Encode into the 64-byte EIP-2098 compact form (``r || vs``).

        Returns:
            0x-prefixed 130-character hex string.
        """
        return "0x" + self.to_parsed().to_compact().hex()


class EIP2612Permit(BasePermit):
    """
    EVM Token Approval Permit (EIP-2612).

    Encapsulates a signed EIP-2612 ``permit()`` authorization, allowing a
    spender to transfer tokens from the owner's account without a prior
    on-chain ``approve()`` call.

    Attributes:
        permit_type: Always ``"EIP2612"`` for this class.
        owner: Token owner's wallet address (0x-prefixed, 42 chars).
        spender: Address authorized to spend.
        token: ERC-20 token contract address (the EIP-712 ``verifyingContract``).
        value: Approved amount in the token's smallest unit.
        nonce: On-chain nonce from the token contract (replay protection).
        deadline: Unix timestamp after which the permit is invalid.
        chain_id: EVM network ID (e.g. 1 = Mainnet, 11155111 = Sepolia).
        signature: ECDSA signature with ``signature_type='EIP2612'``.

    Example::

        permit = EIP2612Permit(
            owner="0x1234...5678",
            spender="0x8765...4321",
            token="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            value=1_000_000,
            nonce=0,
            deadline=1_900_000_000,
            chain_id=1,
            signature=EVMECDSASignature(signature_type="EIP2612", v=27, r="0x...", s="0x..."),
        )
    """

    permit_type: Literal["EIP2612"] = Field(default="EIP2612", description="Permit standard identifier")
    owner: str = Field(..., description="Token owner's wallet address (0x-prefixed)")
    spender: str = Field(..., description="Authorized spender address")
    token: str = Field(..., description="ERC-20 token contract address")
    value: int = Field(..., ge=0, lt=2 ** 256, description="Approved amount in the token's smallest unit")
    nonce: int = Field(..., ge=0, lt=2 ** 256, description="On-chain nonce for replay protection")
    deadline: int = Field(..., ge=0, lt=2 ** 256, description="Unix timestamp after which the permit expires")
    chain_id: int = Field(..., ge=1, description="EVM network ID")
    signature: Optional[EVMECDSASignature] = Field(
        None, description="EIP-2612 ECDSA signature (signature_type='EIP2612')"
    )

    def validate_structure(self) -> bool:
        """
        Validate permit fields and embedded signature.

        Checks that ``owner``, ``spender``, and ``token`` are valid 42-char
        0x-prefixed addresses and that the attached ``EVMECDSASignature``
        passes its own format validation.

        Returns:
            True when all checks pass.

        Raises:
            ValueError: With a descriptive message on the first failed check.
        """
        for field_name, value in [("owner", self.owner), ("spender", self.spender), ("token", self.token)]:
            if not value.startswith("0x"):
                raise ValueError(f"{field_name} must be a 0x-prefixed address")
            if len(value) != 42:
                raise ValueError(f"{field_name} must be 42 characters (0x + 40 hex), got {len(value)}")
            try:
                int(value[2:], 16)
            except ValueError:
                raise ValueError(f"'{field_name}' contains non-hex characters: {value!r}")

        if not self.signature:
            raise ValueError("signature is required")

        try:
            self.signature.validate_format()
        except ValueError as e:
            raise ValueError(f"Signature validation failed: {e}")

        return True

    def to_typed_data(self, *, domain_name: str, domain_version: str) -> PermitTypedData:
        """The ``PermitTypedData`` this permit's signature covers."""
        return build_permit_typed_data(
            owner=self.owner,
            spender=self.spender,
            value=self.value,
            nonce=self.nonce,
            deadline=self.deadline,
            chain_id=self.chain_id,
            verifying_contract=self.token,
            domain_name=domain_name,
            domain_version=domain_version,
        )


class EVMVerificationResult(BaseVerificationResult):
    """
    EVM signature verification result.

    Attributes:
        verification_type: Always ``"evm"``.
        signer:            Expected signer (permit owner) address.
        recovered_signer:  Address recovered from the signature, when recovery succeeded.
        spender:           Authorised spender address (permits only).
        authorized_amount: Permit value in the token's smallest unit (permits only).
        digest:            0x-prefixed EIP-712 digest that was verified.
    """

    verification_type: Literal["evm"] = Field(default="evm", description="Verification type identifier")
    signer: Optional[str] = Field(None, description="Expected signer address")
    recovered_signer: Optional[str] = Field(None, description="Address recovered from the signature")
    spender: Optional[str] = Field(None, description="Authorised spender address")
    authorized_amount: Optional[int] = Field(None, ge=0, description="Permit value in the token's smallest unit")
    digest: Optional[str] = Field(None, description="0x-prefixed EIP-712 digest")
    details: Optional[Dict[str, Any]] = Field(None, description="Optional caller-supplied state (e.g. on-chain nonce)")
