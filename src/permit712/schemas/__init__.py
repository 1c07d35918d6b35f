from .bases import CanonicalModel, BaseSignature, BasePermit, VerificationStatus, BaseVerificationResult

__all__ = [
    "CanonicalModel",
    "BaseSignature",
    "BasePermit",
    "VerificationStatus",
    "BaseVerificationResult",
]
