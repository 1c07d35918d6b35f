"""
Exception and Error Definitions Module

Defines the exception hierarchy raised while encoding EIP-712 types and
values, parsing signatures and recovering signers. All exceptions inherit
from EIP712Error for unified exception handling.

Exception Hierarchy:
    EIP712Error (root)
    ├── TypeEncodingError
    │   ├── UndefinedTypeError
    │   ├── CyclicTypeError
    │   ├── FieldMismatchError
    │   └── InvalidValueError
    ├── SignatureError
    │   ├── InvalidSignatureLengthError
    │   └── InvalidSignatureError
    ├── SignatureVerificationError
    └── ConfigurationError
"""

from typing import Iterable, Optional


class EIP712Error(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class so callers can catch
    every encoding and recovery failure with a single ``except`` clause.
    """
    pass


class TypeEncodingError(EIP712Error):
    """
    Base exception for failures while encoding struct types or values.

    Parent class for all errors raised by the type encoder and the hasher.
    """
    pass


class UndefinedTypeError(TypeEncodingError):
    """
    Raised when a field references a struct type absent from the registry.

    Attributes:
        type_name: The unknown type name
        referenced_by: Struct whose field referenced it (None for a primary type)
    """

    def __init__(self, type_name: str, referenced_by: Optional[str] = None):
        self.type_name = type_name
        self.referenced_by = referenced_by
        if referenced_by:
            message = f"Type {type_name!r} referenced by {referenced_by!r} is not defined"
        else:
            message = f"Type {type_name!r} is not defined"
        super().__init__(message)


class CyclicTypeError(TypeEncodingError):
    """
    Raised when struct definitions reference each other in a cycle.

    Attributes:
        cycle: Ordered list of type names forming the cycle, first name repeated last
    """

    def __init__(self, cycle: Iterable[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic struct reference: {' -> '.join(self.cycle)}")


class FieldMismatchError(TypeEncodingError):
    """
    Raised when a struct value does not have exactly the declared fields.

    This includes scenarios such as:
    - A field declared by the definition is missing from the value
    - The value carries a field the definition does not declare

    Attributes:
        type_name: Struct being encoded
        missing: Declared fields absent from the value
        unexpected: Value keys the definition does not declare
    """

    def __init__(self, type_name: str, missing: Iterable[str] = (), unexpected: Iterable[str] = ()):
        self.type_name = type_name
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        parts = []
        if self.missing:
            parts.append(f"missing fields {self.missing}")
        if self.unexpected:
            parts.append(f"unexpected fields {self.unexpected}")
        super().__init__(f"Value for {type_name!r} does not match its definition: " + "; ".join(parts))


class InvalidValueError(TypeEncodingError, ValueError):
    """
    Raised when a field value cannot be encoded as its declared type.

    This includes scenarios such as:
    - Integer out of range for ``uintN`` / ``intN``
    - Malformed or wrongly checksummed address
    - ``bytesN`` value of the wrong length
    - Fixed-size array with the wrong number of elements
    """
    pass


class SignatureError(EIP712Error):
    """
    Base exception for malformed signatures.

    Parent class for all errors raised while parsing or recovering
    ECDSA signatures.
    """
    pass


class InvalidSignatureLengthError(SignatureError, ValueError):
    """
    Raised when a signature is neither 64 (EIP-2098 compact) nor 65 bytes.

    Attributes:
        length: The length that was received
    """

    def __init__(self, length: int):
        self.length = length
        super().__init__(f"Invalid signature length: {length} bytes (expected 64 or 65)")


class InvalidSignatureError(SignatureError, ValueError):
    """
    Raised when signature components are invalid or recovery fails.

    This includes scenarios such as:
    - Recovery id ``v`` not normalizable to 27 or 28
    - ``r`` or ``s`` equal to zero or not below the curve order
    - High ``s`` when low-s signatures are enforced
    - No public key recoverable from the digest
    """
    pass


class SignatureVerificationError(EIP712Error):
    """
    Raised when a well-formed signature was produced by an unexpected signer.

    Attributes:
        expected: Expected signer address
        recovered: Address actually recovered from the signature
    """

    def __init__(self, expected: str, recovered: str):
        self.expected = expected
        self.recovered = recovered
        super().__init__(f"Signer mismatch: expected {expected}, recovered {recovered}")


class ConfigurationError(EIP712Error):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - No private key supplied and none configured in the environment
    - Non-integer cache size in the environment
    - Unknown chain or token symbol requested from the chain table
    """
    pass
