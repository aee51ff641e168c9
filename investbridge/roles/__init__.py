"""Role state machine, access checks and the role transition authority."""

from investbridge.roles.registry import RESTRICTED_ROLES, ROLE_REGISTRY, Role, RoleDefinition

__all__ = ["RESTRICTED_ROLES", "ROLE_REGISTRY", "Role", "RoleDefinition"]
