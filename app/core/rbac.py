"""
RBAC (Role-Based Access Control) Definitions

This module defines the system roles and the static permission matrix
used for permission checking.
"""

from enum import Enum
from typing import Dict, Set


class SystemRole(str, Enum):
    """
    Roles stored on the user record.
    """
    ADMIN = "ADMIN"  # Platform administrator, full access
    COMPANY = "COMPANY"  # Installer/dealer company staff (sales, engineers)
    CUSTOMER = "CUSTOMER"  # End customer, read-only access to own data
    INSTALLATION_TEAM = "INSTALLATION_TEAM"  # Field crews


class Resource(str, Enum):
    """
    Resources that can be protected by permissions.
    """
    PRODUCTS = "products"
    QUOTES = "quotes"
    PROJECT_REQUESTS = "project_requests"
    NOTIFICATIONS = "notifications"

    # System
    ADMIN = "admin"


class Action(str, Enum):
    """
    Actions that can be performed on resources.
    """
    VIEW = "view"  # Read access
    CREATE = "create"  # Create new records
    UPDATE = "update"  # Modify existing records
    DELETE = "delete"  # Remove records
    MANAGE = "manage"  # Full CRUD access
    APPROVE = "approve"  # Approve workflows
    ALL = "*"  # All actions


ROLE_PERMISSIONS: Dict[SystemRole, Set[str]] = {
    SystemRole.ADMIN: {
        f"{Resource.ADMIN.value}:{Action.ALL.value}",
    },

    SystemRole.COMPANY: {
        f"{Resource.PRODUCTS.value}:{Action.MANAGE.value}",
        f"{Resource.QUOTES.value}:{Action.MANAGE.value}",
        f"{Resource.QUOTES.value}:{Action.APPROVE.value}",
        f"{Resource.PROJECT_REQUESTS.value}:{Action.MANAGE.value}",
        f"{Resource.NOTIFICATIONS.value}:{Action.VIEW.value}",
    },

    SystemRole.CUSTOMER: {
        f"{Resource.QUOTES.value}:{Action.VIEW.value}",
        f"{Resource.PROJECT_REQUESTS.value}:{Action.CREATE.value}",
        f"{Resource.NOTIFICATIONS.value}:{Action.VIEW.value}",
    },

    SystemRole.INSTALLATION_TEAM: {
        f"{Resource.PRODUCTS.value}:{Action.VIEW.value}",
        f"{Resource.PROJECT_REQUESTS.value}:{Action.VIEW.value}",
        f"{Resource.NOTIFICATIONS.value}:{Action.VIEW.value}",
    },
}


def get_permission_key(resource: Resource | str, action: Action | str) -> str:
    """Generate a permission key from resource and action."""
    r = resource.value if isinstance(resource, Resource) else resource
    a = action.value if isinstance(action, Action) else action
    return f"{r}:{a}"


def get_role_permissions(role: SystemRole | str) -> Set[str]:
    """Get all permissions for a role."""
    if isinstance(role, str):
        try:
            role = SystemRole(role.upper())
        except ValueError:
            return set()
    return ROLE_PERMISSIONS.get(role, set())


def role_has_permission(role: SystemRole | str | None, resource: Resource | str, action: Action | str) -> bool:
    """
    Check a role against the permission matrix.

    - "admin:*" grants everything
    - "resource:*" grants every action on the resource
    - "resource:manage" grants view/create/update/delete (not approve)
    """
    if not role:
        return False
    permissions = get_role_permissions(role)
    resource_str = resource.value if isinstance(resource, Resource) else resource
    action_str = action.value if isinstance(action, Action) else action

    if get_permission_key(resource_str, action_str) in permissions:
        return True
    if get_permission_key(Resource.ADMIN, Action.ALL) in permissions:
        return True
    if get_permission_key(resource_str, Action.ALL) in permissions:
        return True
    if get_permission_key(resource_str, Action.MANAGE) in permissions:
        return action_str in (Action.VIEW.value, Action.CREATE.value, Action.UPDATE.value, Action.DELETE.value)
    return False
