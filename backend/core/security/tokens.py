"""
JWT access tokens for the admin API.

Tokens are minted by the identity provider that fronts the admin UI; this
module verifies them and mints them for tests and tooling.
"""

import hmac
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

ACCESS_TOKEN_TYPE = "access"


@dataclass
class TokenPayload:
    """Verified token claims."""

    sub: str  # Caller identity, stored as author_id on created posts
    exp: datetime
    iat: datetime
    type: str
    role: str | None = None

    @classmethod
    def from_claims(cls, claims: dict) -> "TokenPayload":
        return cls(
            sub=claims["sub"],
            exp=datetime.fromtimestamp(claims["exp"], tz=UTC),
            iat=datetime.fromtimestamp(claims.get("iat", 0), tz=UTC),
            type=claims["type"],
            role=claims.get("role"),
        )


class TokenService:
    """Signs and verifies HS256 (by default) access tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 60,
    ):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._lifetime = timedelta(minutes=access_token_expire_minutes)

    def create_access_token(self, subject: str, role: str | None = None) -> str:
        """
        Mint an access token for ``subject``.

        Args:
            subject: Caller identity
            role: Role claim checked by the admin dependency

        Returns:
            Encoded JWT
        """
        issued = datetime.now(UTC)
        claims = {
            "sub": subject,
            "iat": issued,
            "exp": issued + self._lifetime,
            "type": ACCESS_TOKEN_TYPE,
        }
        if role:
            claims["role"] = role
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenPayload | None:
        """Claims of a correctly signed, unexpired token; None otherwise."""
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require_sub": True, "require_exp": True},
            )
        except JWTError:
            return None
        if "type" not in claims:
            return None
        return TokenPayload.from_claims(claims)

    def verify_access_token(self, token: str) -> TokenPayload | None:
        payload = self.decode_token(token)
        if payload is None or payload.type != ACCESS_TOKEN_TYPE:
            return None
        return payload


def secrets_match(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison; an unset secret never matches."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())
