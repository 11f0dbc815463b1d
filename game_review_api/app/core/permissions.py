"""
Role‑based access control.

Roles and their permissions are a static table: ``user`` may read the
catalogue and manage its own reviews, lists and activity, ``admin``
inherits everything a user may do and additionally manages users,
games, any review and the activity trail.  The table only gates which
operations a caller may invoke; ownership checks (e.g. "is this my
review?") happen in the services.
"""

from typing import Callable, Dict, List

from fastapi import Depends, HTTPException, status

from .security import get_current_user


class ROLES:
    USER = "user"
    ADMIN = "admin"


_USER_PERMISSIONS: List[str] = [
    "auth:login",
    "auth:register",
    "auth:view_own_profile",
    "games:view",
    "games:search",
    "reviews:create",
    "reviews:view",
    "reviews:update_own",
    "reviews:delete_own",
    "gamelist:view_own",
    "gamelist:manage_own_wishlist",
    "gamelist:manage_own_played",
    "activities:view_own",
]

PERMISSIONS: Dict[str, List[str]] = {
    ROLES.USER: _USER_PERMISSIONS,
    ROLES.ADMIN: _USER_PERMISSIONS + [
        "users:view_all",
        "users:view",
        "users:update",
        "users:delete",
        "games:create",
        "games:update",
        "games:delete",
        "reviews:delete_any",
        "activities:view_all",
        "activities:delete",
        "system:full_access",
    ],
}


def has_permission(role: str, permission: str) -> bool:
    """Return ``True`` if ``role`` grants ``permission``.  Unknown roles grant nothing."""
    return permission in PERMISSIONS.get(role, [])


def require_permission(permission: str) -> Callable[[Dict[str, str]], Dict[str, str]]:
    """Dependency factory enforcing that the current user's role grants ``permission``.

    Use via ``Depends(require_permission("games:create"))``.  Returns the
    current user payload on success and raises HTTP 403 otherwise.
    """

    def _permission_dependency(current_user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, str]:
        if not has_permission(current_user.get("role"), permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied. Required permission: {permission}",
            )
        return current_user

    return _permission_dependency


def require_roles(*roles: str) -> Callable[[Dict[str, str]], Dict[str, str]]:
    """Dependency factory enforcing that the current user has one of ``roles``."""

    def _role_dependency(current_user: Dict[str, str] = Depends(get_current_user)) -> Dict[str, str]:
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"User role '{current_user.get('role')}' is not authorized to access this route. "
                    f"Required roles: {', '.join(roles)}"
                ),
            )
        return current_user

    return _role_dependency
