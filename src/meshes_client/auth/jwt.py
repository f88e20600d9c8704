"""Machine token (HS256 JWT) bearer authentication."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

import jwt

from ..exceptions import MeshesApiError
from .base import AuthStrategy, TokenSigner

TOKEN_ALGORITHM = "HS256"
TOKEN_AUDIENCE = "meshes-api"
TOKEN_ISSUER_PREFIX = "urn:meshes:m2m:"
# The API refuses machine tokens that live longer than 60 seconds.
TOKEN_LIFETIME_SECONDS = 30


class HS256Signer(TokenSigner):
    """Sign tokens with PyJWT."""

    def sign(self, claims: Mapping[str, Any], header: Mapping[str, Any], key: bytes) -> str:
        algorithm = header.get("alg", TOKEN_ALGORITHM)
        return jwt.encode(dict(claims), key, algorithm=algorithm, headers=dict(header))


@dataclass(slots=True)
class MachineTokenAuth(AuthStrategy):
    """Mint a fresh short-lived token for every request it is applied to."""

    organization_id: str
    access_key: str
    secret_key: bytes = field(repr=False)
    signer: TokenSigner = field(default_factory=HS256Signer)
    clock: Callable[[], float] = time.time

    def claims(self) -> dict[str, Any]:
        issued_at = int(self.clock())
        return {
            "org": self.organization_id,
            "iss": f"{TOKEN_ISSUER_PREFIX}{self.access_key}",
            "aud": TOKEN_AUDIENCE,
            "iat": issued_at,
            "exp": issued_at + TOKEN_LIFETIME_SECONDS,
        }

    def header(self) -> dict[str, str]:
        return {"alg": TOKEN_ALGORITHM, "typ": "JWT", "kid": self.access_key}

    def mint(self) -> str:
        if not self.access_key or not self.secret_key:
            raise MeshesApiError("No Authentication Data")
        return self.signer.sign(self.claims(), self.header(), self.secret_key)

    def apply(self, headers: MutableMapping[str, str]) -> None:
        headers["Authorization"] = f"Bearer {self.mint()}"
