"""
Role-based access control.
Static permission table; a resource maps either to a list of CRUD verbs
or to a boolean capability flag.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class Role(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"
    GUEST = "guest"


PERMISSIONS: Dict[Role, Dict[str, Union[List[str], bool]]] = {
    Role.ADMIN: {
        "documentation": ["read", "write", "delete"],
        "faq": ["read", "write", "delete"],
        "feedback": ["read", "write", "delete"],
        "analytics": True,
    },
    Role.EDITOR: {
        "documentation": ["read", "write"],
        "faq": ["read", "write"],
        "feedback": ["read", "write"],
        "analytics": True,
    },
    Role.VIEWER: {
        "documentation": ["read"],
        "faq": ["read"],
        "feedback": ["read", "write"],
        "analytics": False,
    },
    Role.GUEST: {
        "documentation": ["read"],
        "faq": ["read"],
        "feedback": ["write"],
        "analytics": False,
    },
}


def parse_role(value: Any) -> Role:
    """Map a stored role value to a Role; only exact role names are recognized."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return Role.GUEST


def has_permission(role: Any, resource: str, action: Any) -> bool:
    role_permissions = PERMISSIONS[parse_role(role)]
    resource_permissions = role_permissions.get(resource, [])

    if isinstance(resource_permissions, list):
        return action in resource_permissions
    # capability flag: the action is irrelevant
    return resource_permissions is True


def permission_report(resource: str, action: Any) -> Dict[str, List[Role]]:
    """Split all roles into those that pass and fail a given check."""
    report: Dict[str, List[Role]] = {"passed": [], "failed": []}
    for role in Role:
        key = "passed" if has_permission(role, resource, action) else "failed"
        report[key].append(role)
    return report


@dataclass(frozen=True)
class UserContext:
    """
    Identity of the user driving a session. Built once and passed
    explicitly to portal operations.
    """
    role: Role = Role.GUEST
    email: Optional[str] = None

    @classmethod
    def from_stored(cls, role: Any, email: Optional[str] = None) -> "UserContext":
        return cls(role=parse_role(role), email=email)

    def can(self, resource: str, action: Any) -> bool:
        return has_permission(self.role, resource, action)
