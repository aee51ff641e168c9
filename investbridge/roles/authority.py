"""
Role Transition Authority.

Validates and executes role changes. The stored user record is the single
source of truth; the identity claim is updated right after it and repaired
on read by the AccessGuard if the two ever diverge.

Order of effects on success:
1. user record (role, previousRole, roleChangedAt, roleHistory)
2. identity claim
3. ROLE_UPDATE notification to the caller
4. ROLE_CHANGED audit entry

Concurrent changes for the same identity are last-write-wins.
"""

from typing import Optional

import structlog

from investbridge.errors import DecisionError, InvalidTransition, NotFound, RestrictedRole, UnknownRole
from investbridge.events.notifications import role_changed
from investbridge.identity.provider import Caller, IdentityProvider
from investbridge.roles.guard import AccessGuard
from investbridge.roles.registry import (
    DEFAULT_ROLE,
    ROLE_REGISTRY,
    Role,
    allowed_targets,
    can_transition,
    is_restricted,
)
from investbridge.roles.schemas import AvailableRole, AvailableRoles, ChangeRoleResult, GrantRoleResult
from investbridge.services.audit_log import AuditAction, AuditLog
from investbridge.store.base import ArrayUnion, Collections, DocumentStore, utcnow

logger = structlog.get_logger(__name__)

USER_INITIATED = "user_initiated"
ADMIN_GRANT = "admin_grant"


def _history_entry(previous_role: str, new_role: str, reason: str, changed_at: str) -> dict:
    return {
        "previousRole": previous_role,
        "newRole": new_role,
        "changedAt": changed_at,
        "reason": reason,
    }


class RoleTransitionAuthority:
    """Executes caller-initiated role changes and the admin grant path."""

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        audit: AuditLog,
        guard: Optional[AccessGuard] = None,
    ):
        self.store = store
        self.identity = identity
        self.audit = audit
        self.guard = guard or AccessGuard(store, identity, audit)

    # ── Caller-initiated change ───────────────────────────────────────

    async def change_role(self, caller: Optional[Caller], requested_role: str) -> ChangeRoleResult:
        caller = AccessGuard.require_authenticated(caller)
        progress = {"recordUpdated": False, "claimUpdated": False}
        try:
            return await self._change_role(caller, requested_role, progress)
        except DecisionError as e:
            await self._audit_failure(caller, requested_role, e.message, progress)
            logger.info("role_change_rejected", user_id=caller.id, requested_role=requested_role, error=e.error)
            raise
        except Exception as e:
            # Record and claim may now differ; AccessGuard reconciles on the next read.
            await self._audit_failure(caller, requested_role, str(e), progress)
            logger.error(
                "role_change_failed",
                user_id=caller.id,
                requested_role=requested_role,
                error=str(e),
                record_updated=progress["recordUpdated"],
                claim_updated=progress["claimUpdated"],
            )
            raise

    async def _audit_failure(self, caller: Caller, requested_role: str, error: str, progress: dict) -> None:
        await self.audit.append(
            AuditAction.ROLE_CHANGE_FAILED,
            actor_id=caller.id,
            data={"attemptedRole": requested_role, "error": error, **progress},
        )

    async def _change_role(self, caller: Caller, requested_role: str, progress: dict) -> ChangeRoleResult:
        target = Role.parse(requested_role)
        if target is None:
            raise UnknownRole(f"Invalid role specified: {requested_role}", requested_role=requested_role)

        user = await self.store.get(Collections.USERS, caller.id)
        if user is None:
            raise NotFound("User profile", caller.id)

        current = Role.parse(user.get("role")) or DEFAULT_ROLE

        if is_restricted(target):
            raise RestrictedRole(str(target))

        if not can_transition(current, target):
            raise InvalidTransition(str(current), str(target), [str(r) for r in allowed_targets(current)])

        now = utcnow().isoformat()
        await self.store.update(Collections.USERS, caller.id, {
            "role": str(target),
            "previousRole": str(current),
            "roleChangedAt": now,
            "roleHistory": ArrayUnion(_history_entry(str(current), str(target), USER_INITIATED, now)),
        })
        progress["recordUpdated"] = True

        claims = await self.identity.get_claims(caller.id)
        await self.identity.set_claims(caller.id, {**claims, "role": str(target), "roleChangedAt": now})
        progress["claimUpdated"] = True

        await self.store.create(
            Collections.NOTIFICATIONS,
            role_changed(str(current), str(target)).to_record(caller.id),
        )

        await self.audit.append(
            AuditAction.ROLE_CHANGED,
            actor_id=caller.id,
            data={"previousRole": str(current), "newRole": str(target), "changeReason": USER_INITIATED},
        )

        logger.info("role_changed", user_id=caller.id, previous_role=str(current), new_role=str(target))
        return ChangeRoleResult(
            message=f"Role successfully changed from {current} to {target}",
            previous_role=str(current),
            new_role=str(target),
        )

    # ── Read-only listing ─────────────────────────────────────────────

    async def list_available_roles(self, caller: Optional[Caller]) -> AvailableRoles:
        caller = AccessGuard.require_authenticated(caller)
        user = await self.store.get(Collections.USERS, caller.id)
        if user is None:
            raise NotFound("User profile", caller.id)

        current = Role.parse(user.get("role")) or DEFAULT_ROLE
        return AvailableRoles(
            current_role=str(current),
            current_role_description=ROLE_REGISTRY[current].description,
            available_roles=[
                AvailableRole(
                    role=str(role),
                    description=ROLE_REGISTRY[role].description,
                    requires_approval=ROLE_REGISTRY[role].requires_approval,
                )
                for role in allowed_targets(current)
            ],
        )

    # ── Administrative grant ──────────────────────────────────────────

    async def grant_role(
        self,
        caller: Optional[Caller],
        target_user_id: str,
        role: str,
        approved: bool = True,
        reason: Optional[str] = None,
    ) -> GrantRoleResult:
        """Admin-only path; the only way into a restricted role."""
        await self.guard.require_role(caller, Role.ADMIN, operation="grant_role")

        target = Role.parse(role)
        if target is None:
            raise UnknownRole(f"Invalid role specified: {role}", requested_role=role)

        if not approved:
            await self.audit.append(
                AuditAction.ROLE_CHANGE_REJECTED,
                actor_id=caller.id,
                data={"targetUserId": target_user_id, "requestedRole": str(target), "reason": reason},
            )
            logger.info("role_grant_rejected", admin_id=caller.id, target_user_id=target_user_id, role=str(target))
            return GrantRoleResult(
                message=f"Role change to {target} rejected",
                target_user_id=target_user_id,
                role=str(target),
                approved=False,
            )

        user = await self.store.get(Collections.USERS, target_user_id)
        if user is None:
            raise NotFound("User profile", target_user_id)
        current = Role.parse(user.get("role")) or DEFAULT_ROLE

        now = utcnow().isoformat()
        await self.store.update(Collections.USERS, target_user_id, {
            "role": str(target),
            "previousRole": str(current),
            "roleChangedAt": now,
            "roleApprovedAt": now,
            "roleApprovedBy": caller.id,
            "roleHistory": ArrayUnion(_history_entry(str(current), str(target), reason or ADMIN_GRANT, now)),
        })

        claims = await self.identity.get_claims(target_user_id)
        await self.identity.set_claims(target_user_id, {**claims, "role": str(target), "roleApprovedAt": now})

        await self.store.create(
            Collections.NOTIFICATIONS,
            role_changed(str(current), str(target)).to_record(target_user_id),
        )

        await self.audit.append(
            AuditAction.ROLE_CHANGE_APPROVED,
            actor_id=caller.id,
            data={"targetUserId": target_user_id, "previousRole": str(current), "newRole": str(target)},
        )

        logger.info(
            "role_granted",
            admin_id=caller.id,
            target_user_id=target_user_id,
            previous_role=str(current),
            new_role=str(target),
        )
        return GrantRoleResult(
            message=f"Role successfully changed from {current} to {target}",
            target_user_id=target_user_id,
            role=str(target),
            approved=True,
            previous_role=str(current),
        )
