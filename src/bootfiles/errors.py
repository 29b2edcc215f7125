"""
Exception types for bootfiles.

Errors fall into two tiers. Configuration errors mean the provisioning config
asked for something impossible (unknown user, malformed checksum); they are
fatal for the whole run. Fetch and filesystem errors concern a single entry and
the caller decides whether to continue. The mapping from type to severity and
exit code lives in ``bootfiles.operations.mappers``.
"""
from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "IdentityResolutionError",
    "VerificationConfigError",
    "UnknownHashAlgorithm",
    "FetchError",
    "DigestMismatchError",
    "UnsupportedSourceError",
]


class ConfigurationError(ValueError):
    """
    Raised when a descriptor cannot be resolved into something executable.

    This corresponds to exit code 2 in the CLI and always aborts the run.
    """
    pass


class IdentityResolutionError(ConfigurationError):
    """Raised when a user or group name is unknown or its id is unparsable."""
    pass


class VerificationConfigError(ConfigurationError):
    """Raised when a verification hash string cannot be turned into a digest check."""
    pass


class UnknownHashAlgorithm(VerificationConfigError):
    """Raised when the verification algorithm is not supported."""

    def __init__(self, algorithm: str):
        super().__init__(f"unrecognized hash function: {algorithm!r}")
        self.algorithm = algorithm


class FetchError(Exception):
    """
    Raised when the transport cannot deliver the requested content.

    This corresponds to exit code 3 in the CLI.
    """
    pass


class DigestMismatchError(FetchError):
    """
    Raised when fetched content does not hash to the expected digest.

    This corresponds to exit code 4 in the CLI.
    """

    def __init__(self, source: str, expected: bytes, actual: bytes):
        super().__init__(
            f"digest mismatch for {source}: expected {expected.hex()}, got {actual.hex()}"
        )
        self.source = source
        self.expected = expected
        self.actual = actual


class UnsupportedSourceError(FetchError):
    """Raised for URL schemes or compression types no transport handles."""
    pass
