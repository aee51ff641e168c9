"""
Access Guard.

Per-operation caller checks used by every callable operation:
- require_authenticated: a verified identity must be present
- resolve_role: the stored user record is authoritative; a diverged
  identity claim is rewritten from it
- require_role / require_self: role and ownership checks, audited when denied
"""

from typing import Optional

import structlog

from investbridge.errors import Unauthenticated, Unauthorized
from investbridge.identity.provider import Caller, IdentityProvider
from investbridge.roles.registry import DEFAULT_ROLE, Role
from investbridge.services.audit_log import AuditAction, AuditLog
from investbridge.store.base import Collections, DocumentStore

logger = structlog.get_logger(__name__)


class AccessGuard:
    """Caller checks against the stored role."""

    def __init__(self, store: DocumentStore, identity: IdentityProvider, audit: AuditLog):
        self.store = store
        self.identity = identity
        self.audit = audit

    @staticmethod
    def require_authenticated(caller: Optional[Caller]) -> Caller:
        if caller is None or not caller.id:
            raise Unauthenticated("User must be authenticated.")
        return caller

    async def resolve_role(self, caller: Caller) -> Role:
        """
        Return the caller's authoritative role.

        When the stored record holds a role that differs from the identity
        claim, the claim is rewritten from the record and the repair audited.
        """
        user = await self.store.get(Collections.USERS, caller.id)
        if user is None:
            return DEFAULT_ROLE

        stored_raw = user.get("role")
        stored = Role.parse(stored_raw) or DEFAULT_ROLE
        if stored_raw is None:
            return stored

        claims = await self.identity.get_claims(caller.id)
        if claims.get("role") != str(stored):
            logger.warning(
                "role_claim_diverged",
                user_id=caller.id,
                claim_role=claims.get("role"),
                stored_role=str(stored),
            )
            await self.identity.set_claims(caller.id, {**claims, "role": str(stored)})
            await self.audit.append(
                AuditAction.ROLE_CLAIM_RECONCILED,
                actor_id=caller.id,
                data={"claimRole": claims.get("role"), "storedRole": str(stored)},
            )
        return stored

    async def require_role(self, caller: Optional[Caller], *roles: Role, operation: str = "") -> Role:
        """Raise Unauthorized unless the caller's stored role is one of ``roles``."""
        caller = self.require_authenticated(caller)
        role = await self.resolve_role(caller)
        if role not in roles:
            await self._deny(
                caller,
                operation=operation,
                reason="insufficient_role",
                role=str(role),
                required=[str(r) for r in roles],
            )
            wanted = " or ".join(str(r) for r in roles)
            raise Unauthorized(f"Only {wanted} users can perform this action.", required_roles=[str(r) for r in roles])
        return role

    async def require_self(self, caller: Caller, owner_id: str, operation: str = "") -> None:
        """Raise Unauthorized when ``caller`` does not own the resource."""
        if caller.id != owner_id:
            await self._deny(caller, operation=operation, reason="not_owner", owner_id=owner_id)
            raise Unauthorized("You can only access your own resources.")

    async def _deny(self, caller: Caller, operation: str, reason: str, **context) -> None:
        logger.warning("access_denied", user_id=caller.id, operation=operation, reason=reason, **context)
        await self.audit.append(
            AuditAction.ACCESS_DENIED,
            actor_id=caller.id,
            data={"operation": operation, "reason": reason, **context},
        )
