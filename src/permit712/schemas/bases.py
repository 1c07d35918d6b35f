"""
Base Schema Models for permit712

This module defines the base classes that the EVM signature, permit and
verification models inherit from. It provides deterministic serialization
and a common result interface for every verifier in the package.

Core Classes:
    - CanonicalModel: RFC8785-style Pydantic base model with canonical JSON output
    - BaseSignature: Abstract signature component model
    - BasePermit: Abstract permit model for signature-based approvals
    - VerificationStatus: Enumeration of verification outcomes
    - BaseVerificationResult: Abstract verification result model

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Optional, Dict, Any
from abc import ABC
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    RFC8785-style Pydantic base model with canonical JSON serialization.

    Ensures a deterministic JSON representation (sorted keys, no extra
    whitespace) so that serialized models can be compared, logged and
    hashed consistently.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string.

        ``model_dump(mode="json")`` turns nested models, enums and bytes into
        plain JSON types; ``json.dumps`` with sorted keys and compact
        separators makes the output deterministic.

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json")
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary with all model fields.
        """
        return self.model_dump()


class BaseSignature(CanonicalModel, ABC):
    """
    Abstract base class for signature components.

    Concrete signature classes (e.g. the v/r/s ECDSA signature used by
    EIP-712) inherit from this class and implement ``validate_format``.

    Attributes:
        signature_type: The type of signature (e.g., "EIP712", "EIP2612")
        created_at: Timestamp when the signature object was created
    """

    signature_type: str = Field(..., description="Type of signature (e.g., EIP712, EIP2612)")
    created_at: datetime = Field(default_factory=datetime.now, description="Signature creation timestamp")

    def validate_format(self) -> bool:
        """
        Validate the signature format.

        Returns:
            bool: True if signature format is valid.

        Raises:
            ValueError: If signature format is invalid with descriptive message.
        """
        raise NotImplementedError


class BasePermit(CanonicalModel, ABC):
    """
    Abstract base class for signature-based approval messages.

    A permit is a signed message that authorizes a spender to use tokens
    on behalf of their owner without a prior on-chain approval.

    Attributes:
        permit_type: Type of permit (e.g., "EIP2612")
        signature: Signature components for the permit
        created_at: Timestamp when permit was created
    """

    permit_type: str = Field(..., description="Type of permit (e.g., EIP2612)")
    signature: Optional[BaseSignature] = Field(None, description="Signature components")
    created_at: datetime = Field(default_factory=datetime.now, description="Permit creation timestamp")

    def validate_structure(self) -> bool:
        """
        Validate the permit structure and required fields.

        Returns:
            bool: True if permit structure is valid.

        Raises:
            ValueError: If permit structure is invalid with descriptive message.
        """
        raise NotImplementedError


class VerificationStatus(str, Enum):
    """
    Enumeration of possible verification result statuses.

    Attributes:
        SUCCESS: Signature is valid and every check passed
        INVALID_SIGNATURE: Signature is malformed or signer mismatch
        INVALID_MESSAGE: Typed data could not be encoded
        EXPIRED: Permit deadline has passed
        REPLAY_ATTACK: Nonce does not match the expected nonce
        UNKNOWN_ERROR: Unexpected error during verification
    """
    SUCCESS = "success"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_MESSAGE = "invalid_message"
    EXPIRED = "expired"
    REPLAY_ATTACK = "replay_attack"
    UNKNOWN_ERROR = "unknown_error"


class BaseVerificationResult(CanonicalModel, ABC):
    """
    Abstract base class for signature verification results.

    Attributes:
        verification_type: Type of verification (e.g., "evm")
        status: Verification result status (VerificationStatus enum)
        is_valid: Boolean indicating if verification was successful
        message: Human-readable status message
        error_details: Detailed error information if verification failed
        verified_at: Timestamp when verification was performed
    """

    verification_type: str = Field(..., description="Type of verification (e.g., evm)")
    status: VerificationStatus = Field(..., description="Verification result status")
    is_valid: bool = Field(..., description="Whether the signature is valid and verified")
    message: str = Field(..., description="Human-readable status message")
    error_details: Optional[Dict[str, Any]] = Field(None, description="Detailed error information")
    verified_at: datetime = Field(default_factory=datetime.now, description="Verification timestamp")

    def is_success(self) -> bool:
        """
        Check if verification was successful.

        Returns:
            bool: True if verification was successful, False otherwise.

        Example:
            result = verify_permit(...)
            if result.is_success():
                # submit permit()
        """
        return self.is_valid and self.status == VerificationStatus.SUCCESS

    def get_error_message(self) -> Optional[str]:
        """
        Get formatted error message from verification result.

        Returns:
            Optional[str]: Error message if verification failed, None if successful.
        """
        if self.is_success():
            return None

        error_msg = f"Verification failed: {self.message}"
        if self.error_details:
            details_str = json.dumps(self.error_details, indent=2, default=str)
            error_msg += f"\nDetails: {details_str}"
        return error_msg
