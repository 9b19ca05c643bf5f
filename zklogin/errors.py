"""Exception hierarchy for enrollment, proving and authentication."""

from __future__ import annotations


class ZKLoginError(Exception):
    """Base class for every error raised by the package."""


class ValidationError(ZKLoginError, ValueError):
    """A request field is missing or cannot be decoded."""


class NotFoundError(ZKLoginError, LookupError):
    """No enrollment record exists for the identity."""


class WitnessError(ZKLoginError):
    """The private inputs do not satisfy the login circuit."""


class VerificationFailedError(ZKLoginError):
    """The submitted proof was rejected."""


class MalformedProofError(ZKLoginError):
    """The proof or public signals cannot be parsed."""


class ArtifactError(ZKLoginError):
    """A proving or verification key is missing, corrupt or mismatched."""


class StoreFormatError(ZKLoginError):
    """The record file uses an unknown or un-migrated format."""


__all__ = [
    "ZKLoginError",
    "ValidationError",
    "NotFoundError",
    "WitnessError",
    "VerificationFailedError",
    "MalformedProofError",
    "ArtifactError",
    "StoreFormatError",
]
