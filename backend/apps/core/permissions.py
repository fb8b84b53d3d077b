"""Role permissions and the checks GraphQL resolvers run against them."""
from typing import TYPE_CHECKING

from strawberry.types import Info

if TYPE_CHECKING:
    from apps.core.context import Context


# Grantable actions per resource. Role permissions are stored flat as
# {"<resource>.<action>": True}.
PERMISSION_REGISTRY = {
    "contracts": ["read", "write", "delete"],
    "invoices": ["read", "write", "delete"],
    "marketplace": ["read", "sync", "settings"],
    "users": ["read", "write", "delete"],
}

ALL_PERMISSIONS = frozenset(
    f"{resource}.{action}"
    for resource, actions in PERMISSION_REGISTRY.items()
    for action in actions
)

READ_PERMISSIONS = frozenset(p for p in ALL_PERMISSIONS if p.endswith(".read"))

# Built-in roles seeded for every new tenant
DEFAULT_ROLES = {
    "Admin": {perm: True for perm in ALL_PERMISSIONS},
    # Manages contracts, invoices and syncs, but not users or cloud account settings
    "Manager": {
        perm: True
        for perm in ALL_PERMISSIONS
        if not perm.startswith("users.") and perm != "marketplace.settings"
    },
    "Viewer": {
        perm: True
        for perm in READ_PERMISSIONS
        if not perm.startswith("users.")
    },
}


def normalize_permissions(raw: dict) -> dict:
    """Flatten a permissions dict to {"resource.action": True}.

    Accepts both the flat form and the grouped form {"contracts": ["read"]}.
    Unknown permissions and falsy grants are dropped.
    """
    result = {}
    for key, value in raw.items():
        if key in PERMISSION_REGISTRY and isinstance(value, (list, tuple)):
            candidates = [f"{key}.{action}" for action in value]
        elif value:
            candidates = [key]
        else:
            continue
        for perm in candidates:
            if perm in ALL_PERMISSIONS:
                result[perm] = True
    return result


class PermissionError(Exception):
    """The request is unauthenticated or lacks a required permission."""


def _denial(info: Info["Context", None], resource: str, action: str) -> str | None:
    if not info.context.is_authenticated:
        return "Authentication required"
    if not info.context.user.has_perm_check(resource, action):
        return "Permission denied"
    return None


def require_perm(info: Info["Context", None], resource: str, action: str):
    """Return the current user, raising PermissionError when access is denied.

    Used by queries, where the error surfaces as a GraphQL error.
    """
    denial = _denial(info, resource, action)
    if denial == "Permission denied":
        raise PermissionError(f"Permission denied: {resource}.{action}")
    if denial:
        raise PermissionError(denial)
    return info.context.user


def check_perm(info: Info["Context", None], resource: str, action: str):
    """Return (user, None) when allowed, otherwise (None, error message).

    Used by mutations, which report the message in their result type.
    """
    denial = _denial(info, resource, action)
    if denial:
        return None, denial
    return info.context.user, None


def get_current_user_from_request(request):
    """Authenticated user for a plain Django request, or None."""
    from apps.core.context import get_context

    return get_context(request).user
