"""
Security utilities for authentication and authorization.
"""

from .tokens import TokenPayload, TokenService, secrets_match

__all__ = [
    "TokenService",
    "TokenPayload",
    "secrets_match",
]
