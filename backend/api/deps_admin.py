"""
Admin authentication dependencies.
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from core.security.tokens import TokenPayload, TokenService, secrets_match
from infrastructure.config.settings import settings

token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
)


def bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if authorization and authorization.startswith("Bearer "):
        parts = authorization.split(" ", 1)
        return parts[1].strip() or None
    return None


async def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> TokenPayload:
    """
    Dependency to verify the caller holds a valid admin access token.

    Returns:
        TokenPayload: Verified token claims; ``sub`` identifies the caller

    Raises:
        HTTPException: 401 if the token is missing or invalid, 403 if the
            caller is not an admin
    """
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = token_service.verify_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.role != settings.admin_role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required. You do not have permission to access this resource.",
        )

    return payload


async def verify_cron_secret(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """
    Dependency guarding the cron trigger with ``Bearer <CRON_SECRET>``.

    Rejects every request while CRON_SECRET is unset.
    """
    if not secrets_match(bearer_token(authorization), settings.cron_secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
