"""
Digest accumulators for content verification.
"""
from __future__ import annotations

import hashlib
from typing import Callable, Dict

from .errors import UnknownHashAlgorithm

__all__ = ["get_hasher", "SUPPORTED_ALGORITHMS"]

_FACTORIES: Dict[str, Callable[[], "hashlib._Hash"]] = {
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}

SUPPORTED_ALGORITHMS = tuple(sorted(_FACTORIES))


def get_hasher(algorithm: str):
    """
    Return a fresh digest accumulator for the named algorithm.

    Raises:
        UnknownHashAlgorithm: If the algorithm is not supported
    """
    try:
        return _FACTORIES[algorithm]()
    except KeyError:
        raise UnknownHashAlgorithm(algorithm) from None
