from dataclasses import dataclass, field
from typing import Protocol, Sequence

import jwt

from app.core.errors import PermissionDeniedError, UnauthenticatedError

ERR_MISSING_TOKEN = "JWT token missing"
ERR_INVALID_TOKEN = "Invalid token"
ERR_GROUPS = "User not in allowed groups"


@dataclass(frozen=True)
class Principal:
    subject: str
    groups: tuple[str, ...] = field(default_factory=tuple)


class TokenVerifier(Protocol):
    def verify(self, token: str, groups: Sequence[str]) -> Principal: ...


class JWTVerifier:
    """Verifies bearer tokens against the identity provider's JWKS.

    The token's `groups` claim must share at least one entry with the
    groups allowed for the called operation; no allowed groups means any
    authenticated user.
    """

    def __init__(self, jwks_url: str, audiences: Sequence[str] = (), algorithms: Sequence[str] = ("RS256",)):
        self._jwks = jwt.PyJWKClient(jwks_url)
        self._audiences = list(audiences)
        self._algorithms = list(algorithms)

    def verify(self, token: str, groups: Sequence[str]) -> Principal:
        if not token:
            raise UnauthenticatedError(ERR_MISSING_TOKEN)
        try:
            key = self._jwks.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                key.key,
                algorithms=self._algorithms,
                audience=self._audiences or None,
                options={"verify_aud": bool(self._audiences)},
            )
        except jwt.PyJWTError as exc:
            raise UnauthenticatedError(ERR_INVALID_TOKEN) from exc

        principal = Principal(subject=str(claims.get("sub", "")), groups=tuple(claims.get("groups") or ()))
        if groups and not set(groups) & set(principal.groups):
            raise PermissionDeniedError(ERR_GROUPS)
        return principal
