"""Base abstractions for request signing."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from typing import Any


class TokenSigner(ABC):
    """Produce a compact signed token from claims and a protected header."""

    @abstractmethod
    def sign(self, claims: Mapping[str, Any], header: Mapping[str, Any], key: bytes) -> str:
        """Return the encoded token."""


class AuthStrategy(ABC):
    """Interface each authentication mechanism must implement."""

    @abstractmethod
    def apply(self, headers: MutableMapping[str, str]) -> None:
        """Mutate headers in-place with the necessary credentials."""
