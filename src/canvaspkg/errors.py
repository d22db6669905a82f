"""
Error taxonomy for canvaspkg.

Every failure is fatal to the app being unpacked. None of them are retried:
any detected inconsistency is unsafe to proceed past silently.

    ValidationError             - malformed or unexpected container layout
    VersionTooOldError          - reserialization drift on an unsupported doc version
    SerializationMismatchError  - reserialization drift on a supported doc version
    RelocationError             - metadata file missing or cannot be placed
    ConfigError                 - invalid options file
    CompositionError            - decomposed tree cannot be put back together
"""

from __future__ import annotations

from typing import Dict, List, Optional


class UnpackError(Exception):
    """Base class for all canvaspkg failures."""
    pass


class ValidationError(UnpackError):
    """Raised when a container or bundle entry does not have the expected layout."""
    pass


class VersionTooOldError(UnpackError):
    """Raised when a document too old to be verified fails verification."""

    def __init__(self, version: str, minimum: str):
        self.version = version
        self.minimum = minimum
        super().__init__(
            f"The version of the canvas app is too old!  App version {version}.  "
            f"Minimum Version {minimum}"
        )


class SerializationMismatchError(UnpackError):
    """
    Raised when a control file does not reserialize to its original bytes.

    Properties:
        locations: first difference per comparison pass ("raw", "formatted")
        artifacts: diagnostic files written for human review
    """

    def __init__(self, message: str, locations: Optional[Dict[str, object]] = None,
                 artifacts: Optional[List[str]] = None):
        self.locations = locations or {}
        self.artifacts = artifacts or []
        super().__init__(message)


class RelocationError(UnpackError):
    """Raised when a metadata file is missing or cannot be moved into place."""
    pass


class ConfigError(UnpackError):
    """Raised when an options file cannot be loaded or validated."""
    pass


class CompositionError(UnpackError):
    """Raised when a decomposed tree is inconsistent with its catalog or code files."""
    pass


__all__ = [
    "UnpackError",
    "ValidationError",
    "VersionTooOldError",
    "SerializationMismatchError",
    "RelocationError",
    "ConfigError",
    "CompositionError",
]
