"""
Types shared by the resolver, the executor and transports.

A FetchPlan is the fully resolved form of one file descriptor: numeric
ownership, a parsed source and an explicit verification choice. Transports
receive the subset they need as FetchOptions.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import IO, Optional, Protocol, Union
from urllib.parse import SplitResult

__all__ = [
    "Identity",
    "ROOT_IDENTITY",
    "NoVerification",
    "Verify",
    "VerificationChoice",
    "FetchOptions",
    "FetchPlan",
    "LinkPlan",
    "Transport",
]


@dataclass(frozen=True, slots=True)
class Identity:
    """A resolved (uid, gid) pair."""
    uid: int
    gid: int


ROOT_IDENTITY = Identity(0, 0)


@dataclass(frozen=True, slots=True)
class NoVerification:
    """The descriptor did not ask for a content digest check."""


@dataclass(frozen=True, slots=True)
class Verify:
    """
    Content must hash to ``expected`` under ``algorithm``.

    ``hasher`` is the digest accumulator the transport feeds while writing.
    It is stateful, so a Verify belongs to exactly one fetch.
    """
    algorithm: str
    hasher: object = field(compare=False, repr=False)
    expected: bytes = b""

    def __post_init__(self) -> None:
        if not self.expected:
            raise ValueError("Verify requires a non-empty expected digest")
        size = getattr(self.hasher, "digest_size", None)
        if size is not None and size != len(self.expected):
            raise ValueError(
                f"{self.algorithm} digest must be {size} bytes, got {len(self.expected)}"
            )


VerificationChoice = Union[NoVerification, Verify]


@dataclass(frozen=True, slots=True)
class FetchOptions:
    """What a transport needs besides the source and the destination."""
    hasher: Optional[object] = None
    compression: str = ""
    expected_sum: bytes = b""


@dataclass(frozen=True, slots=True)
class FetchPlan:
    """
    A single resolved file materialization, ready for execute_fetch().

    The digest accumulator is present if and only if expected_sum is
    non-empty; both derive from ``verification``.
    """
    path: str                    # Absolute path on the target system
    mode: int                    # Permission bits applied before the rename
    uid: int
    gid: int
    source: SplitResult          # Parsed source URL; empty means empty file
    verification: VerificationChoice = NoVerification()
    compression: str = ""

    @property
    def hasher(self) -> Optional[object]:
        if isinstance(self.verification, Verify):
            return self.verification.hasher
        return None

    @property
    def expected_sum(self) -> bytes:
        if isinstance(self.verification, Verify):
            return self.verification.expected
        return b""

    @property
    def options(self) -> FetchOptions:
        return FetchOptions(
            hasher=self.hasher,
            compression=self.compression,
            expected_sum=self.expected_sum,
        )


@dataclass(frozen=True, slots=True)
class LinkPlan:
    """
    A single resolved link, ready for execute_link().

    ``identity`` is None for hard links, which share their target's owner.
    """
    path: str
    target: str
    hard: bool = False
    identity: Optional[Identity] = None


class Transport(Protocol):
    """
    Protocol for moving source bytes into a destination file.

    Implementations decompress according to ``options.compression``, feed every
    byte written to ``dest`` into ``options.hasher`` and raise
    DigestMismatchError when the final digest differs from
    ``options.expected_sum``.
    """

    def fetch(self, source: SplitResult, dest: IO[bytes], options: FetchOptions) -> None:
        """
        Write the content behind ``source`` into ``dest``.

        Raises:
            FetchError: If the content cannot be retrieved or decoded
            DigestMismatchError: If verification fails
        """
        ...
