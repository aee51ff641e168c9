"""Caller identity verification and custom claims."""

from investbridge.identity.provider import Caller, IdentityProvider, JwtIdentityProvider

__all__ = ["Caller", "IdentityProvider", "JwtIdentityProvider"]
