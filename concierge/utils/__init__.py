"""Utility helpers for the concierge backend."""

from .security import (
    AuthenticationError,
    create_access_token,
    decode_access_token,
)

__all__ = [
    "create_access_token",
    "decode_access_token",
    "AuthenticationError",
]
