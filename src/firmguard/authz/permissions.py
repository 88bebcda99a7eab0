"""Permission resolver - closed mapping from Role to Permission keys."""

from enum import Enum

from src.firmguard.authz.roles import Role
from src.firmguard.core.exceptions import ConfigurationError
from src.firmguard.tenancy.principal import Principal


class Permission(str, Enum):
    """Grantable capabilities, as dotted ``domain.action[.scope]`` keys."""

    # User management
    USERS_VIEW_ALL = "users.view.all"
    USERS_VIEW_OWN_FIRM = "users.view.own_firm"
    USERS_CREATE = "users.create"
    USERS_EDIT_ALL = "users.edit.all"
    USERS_EDIT_OWN_FIRM = "users.edit.own_firm"
    USERS_DELETE = "users.delete"
    USERS_CHANGE_ROLE = "users.change_role"

    # Firm management
    FIRMS_VIEW_ALL = "firms.view.all"
    FIRMS_VIEW_OWN = "firms.view.own"
    FIRMS_CREATE = "firms.create"
    FIRMS_EDIT_ALL = "firms.edit.all"
    FIRMS_EDIT_OWN = "firms.edit.own"
    FIRMS_DELETE = "firms.delete"

    # Project management
    PROJECTS_VIEW_ALL = "projects.view.all"
    PROJECTS_VIEW_OWN_FIRM = "projects.view.own_firm"
    PROJECTS_CREATE = "projects.create"
    PROJECTS_EDIT_ALL = "projects.edit.all"
    PROJECTS_EDIT_OWN_FIRM = "projects.edit.own_firm"
    PROJECTS_DELETE = "projects.delete"
    PROJECTS_MANAGE_FIRMS = "projects.manage_firms"

    # Requirements
    REQUIREMENTS_VIEW = "requirements.view"
    REQUIREMENTS_CREATE = "requirements.create"
    REQUIREMENTS_EDIT = "requirements.edit"
    REQUIREMENTS_DELETE = "requirements.delete"
    REQUIREMENTS_ASSIGN = "requirements.assign"

    # Tasks
    TASKS_VIEW = "tasks.view"
    TASKS_CREATE = "tasks.create"
    TASKS_EDIT_ALL = "tasks.edit.all"
    TASKS_EDIT_ASSIGNED = "tasks.edit.assigned"
    TASKS_DELETE = "tasks.delete"
    TASKS_ASSIGN = "tasks.assign"

    # Documents
    DOCUMENTS_VIEW_ALL = "documents.view.all"
    DOCUMENTS_VIEW_OWN_FIRM = "documents.view.own_firm"
    DOCUMENTS_UPLOAD = "documents.upload"
    DOCUMENTS_EDIT = "documents.edit"
    DOCUMENTS_DELETE = "documents.delete"
    DOCUMENTS_DOWNLOAD = "documents.download"

    # System administration
    SYSTEM_VIEW_AUDIT_LOGS = "system.view_audit_logs"
    SYSTEM_VIEW_ANALYTICS = "system.view_analytics"
    SYSTEM_MANAGE_SETTINGS = "system.manage_settings"
    SYSTEM_BYPASS_TENANT = "system.bypass_tenant"
    SYSTEM_IMPERSONATE = "system.impersonate"

    @classmethod
    def parse(cls, key: "Permission | str") -> "Permission":
        """Resolve a key string, rejecting anything outside the closed set."""
        if isinstance(key, Permission):
            return key
        try:
            return cls(key)
        except ValueError as e:
            raise ConfigurationError(f"Unknown permission key: {key!r}") from e

    @property
    def domain(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def description(self) -> str:
        return PERMISSION_DESCRIPTIONS[self]


PERMISSION_DESCRIPTIONS: dict[Permission, str] = {
    Permission.USERS_VIEW_ALL: "View all users across firms",
    Permission.USERS_VIEW_OWN_FIRM: "View users in own firm",
    Permission.USERS_CREATE: "Create new users",
    Permission.USERS_EDIT_ALL: "Edit any user",
    Permission.USERS_EDIT_OWN_FIRM: "Edit users in own firm",
    Permission.USERS_DELETE: "Delete users",
    Permission.USERS_CHANGE_ROLE: "Change user roles",
    Permission.FIRMS_VIEW_ALL: "View all firms",
    Permission.FIRMS_VIEW_OWN: "View own firm",
    Permission.FIRMS_CREATE: "Create new firms",
    Permission.FIRMS_EDIT_ALL: "Edit any firm",
    Permission.FIRMS_EDIT_OWN: "Edit own firm",
    Permission.FIRMS_DELETE: "Delete firms",
    Permission.PROJECTS_VIEW_ALL: "View all projects",
    Permission.PROJECTS_VIEW_OWN_FIRM: "View projects involving own firm",
    Permission.PROJECTS_CREATE: "Create new projects",
    Permission.PROJECTS_EDIT_ALL: "Edit any project",
    Permission.PROJECTS_EDIT_OWN_FIRM: "Edit projects involving own firm",
    Permission.PROJECTS_DELETE: "Delete projects",
    Permission.PROJECTS_MANAGE_FIRMS: "Add/remove firms from projects",
    Permission.REQUIREMENTS_VIEW: "View requirements",
    Permission.REQUIREMENTS_CREATE: "Create requirements",
    Permission.REQUIREMENTS_EDIT: "Edit requirements",
    Permission.REQUIREMENTS_DELETE: "Delete requirements",
    Permission.REQUIREMENTS_ASSIGN: "Assign requirements to users/firms",
    Permission.TASKS_VIEW: "View tasks",
    Permission.TASKS_CREATE: "Create tasks",
    Permission.TASKS_EDIT_ALL: "Edit any task",
    Permission.TASKS_EDIT_ASSIGNED: "Edit assigned tasks",
    Permission.TASKS_DELETE: "Delete tasks",
    Permission.TASKS_ASSIGN: "Assign tasks to users/firms",
    Permission.DOCUMENTS_VIEW_ALL: "View all documents",
    Permission.DOCUMENTS_VIEW_OWN_FIRM: "View own firm documents",
    Permission.DOCUMENTS_UPLOAD: "Upload documents",
    Permission.DOCUMENTS_EDIT: "Edit document metadata",
    Permission.DOCUMENTS_DELETE: "Delete documents",
    Permission.DOCUMENTS_DOWNLOAD: "Download documents",
    Permission.SYSTEM_VIEW_AUDIT_LOGS: "View audit logs",
    Permission.SYSTEM_VIEW_ANALYTICS: "View system analytics",
    Permission.SYSTEM_MANAGE_SETTINGS: "Manage system settings",
    Permission.SYSTEM_BYPASS_TENANT: "Bypass tenant restrictions",
    Permission.SYSTEM_IMPERSONATE: "Impersonate other users",
}

# Superadmin passes these without a grant, but the pass is audited.
SENSITIVE_ABILITIES: frozenset[Permission] = frozenset(
    {
        Permission.USERS_DELETE,
        Permission.FIRMS_DELETE,
        Permission.SYSTEM_IMPERSONATE,
    }
)

P = Permission

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.SUPERADMIN: frozenset(Permission),
    Role.ADMIN: frozenset(
        {
            P.USERS_VIEW_OWN_FIRM,
            P.USERS_CREATE,
            P.USERS_EDIT_OWN_FIRM,
            P.USERS_CHANGE_ROLE,
            P.FIRMS_VIEW_OWN,
            P.FIRMS_EDIT_OWN,
            P.PROJECTS_VIEW_OWN_FIRM,
            P.PROJECTS_CREATE,
            P.PROJECTS_EDIT_OWN_FIRM,
            P.PROJECTS_MANAGE_FIRMS,
            P.REQUIREMENTS_VIEW,
            P.REQUIREMENTS_CREATE,
            P.REQUIREMENTS_EDIT,
            P.REQUIREMENTS_DELETE,
            P.REQUIREMENTS_ASSIGN,
            P.TASKS_VIEW,
            P.TASKS_CREATE,
            P.TASKS_EDIT_ALL,
            P.TASKS_DELETE,
            P.TASKS_ASSIGN,
            P.DOCUMENTS_VIEW_OWN_FIRM,
            P.DOCUMENTS_UPLOAD,
            P.DOCUMENTS_EDIT,
            P.DOCUMENTS_DELETE,
            P.DOCUMENTS_DOWNLOAD,
            P.SYSTEM_VIEW_AUDIT_LOGS,
        }
    ),
    Role.BUSINESS_DEVELOPMENT: frozenset(
        {
            P.USERS_VIEW_OWN_FIRM,
            P.FIRMS_VIEW_OWN,
            P.PROJECTS_VIEW_OWN_FIRM,
            P.PROJECTS_CREATE,
            P.PROJECTS_EDIT_OWN_FIRM,
            P.PROJECTS_MANAGE_FIRMS,
            P.REQUIREMENTS_VIEW,
            P.REQUIREMENTS_CREATE,
            P.REQUIREMENTS_EDIT,
            P.REQUIREMENTS_ASSIGN,
            P.TASKS_VIEW,
            P.TASKS_CREATE,
            P.TASKS_EDIT_ALL,
            P.TASKS_ASSIGN,
            P.DOCUMENTS_VIEW_OWN_FIRM,
            P.DOCUMENTS_UPLOAD,
            P.DOCUMENTS_EDIT,
            P.DOCUMENTS_DOWNLOAD,
        }
    ),
    Role.CONSULTANT: frozenset(
        {
            P.USERS_VIEW_OWN_FIRM,
            P.FIRMS_VIEW_OWN,
            P.PROJECTS_VIEW_OWN_FIRM,
            P.REQUIREMENTS_VIEW,
            P.REQUIREMENTS_CREATE,
            P.REQUIREMENTS_EDIT,
            P.TASKS_VIEW,
            P.TASKS_CREATE,
            P.TASKS_EDIT_ASSIGNED,
            P.DOCUMENTS_VIEW_OWN_FIRM,
            P.DOCUMENTS_UPLOAD,
            P.DOCUMENTS_DOWNLOAD,
        }
    ),
    Role.JV_PARTNER: frozenset(
        {
            P.FIRMS_VIEW_OWN,
            P.PROJECTS_VIEW_OWN_FIRM,
            P.REQUIREMENTS_VIEW,
            P.TASKS_VIEW,
            P.TASKS_EDIT_ASSIGNED,
            P.DOCUMENTS_VIEW_OWN_FIRM,
            P.DOCUMENTS_DOWNLOAD,
        }
    ),
    Role.USER: frozenset(
        {
            P.USERS_VIEW_OWN_FIRM,
            P.FIRMS_VIEW_OWN,
            P.PROJECTS_VIEW_OWN_FIRM,
            P.PROJECTS_EDIT_OWN_FIRM,
            P.REQUIREMENTS_VIEW,
            P.REQUIREMENTS_CREATE,
            P.REQUIREMENTS_EDIT,
            P.TASKS_VIEW,
            P.TASKS_CREATE,
            P.TASKS_EDIT_ASSIGNED,
            P.DOCUMENTS_VIEW_OWN_FIRM,
            P.DOCUMENTS_UPLOAD,
            P.DOCUMENTS_DOWNLOAD,
        }
    ),
}

del P


def permissions_for(role: Role | str) -> frozenset[Permission]:
    """Get the permission set of a role.

    Raises:
        ConfigurationError: If the role is unknown or has no permission set
    """
    parsed = Role.parse(role)
    try:
        return ROLE_PERMISSIONS[parsed]
    except KeyError as e:
        raise ConfigurationError(f"Role {parsed.value!r} has no permission set") from e


def has_permission(principal: Principal, key: Permission | str) -> bool:
    """Check whether the principal holds a permission.

    Superadmin always passes. Auditing a sensitive override is the caller's job.
    """
    permission = Permission.parse(key)
    if principal.is_superadmin:
        return True
    return permission in permissions_for(principal.role)


def can_assign_role(
    principal: Principal,
    target_role: Role | str,
    target: Principal | None = None,
) -> bool:
    """Check whether the principal may give ``target_role`` to someone.

    Args:
        principal: The caller doing the assignment
        target_role: Role to be assigned
        target: The user receiving the role, when known

    Returns:
        True for superadmins. Otherwise the caller needs ``users.change_role``,
        the role must be below superadmin, and the target must be neither the
        caller themselves nor a superadmin.
    """
    role = Role.parse(target_role)
    if principal.is_superadmin:
        return True
    if target is not None and (target.id == principal.id or target.is_superadmin):
        return False
    if role is Role.SUPERADMIN:
        return False
    return has_permission(principal, Permission.USERS_CHANGE_ROLE)


def assignable_roles(principal: Principal) -> list[Role]:
    """List the roles the principal may assign to other users."""
    if not has_permission(principal, Permission.USERS_CHANGE_ROLE):
        return []
    return [role for role in Role if can_assign_role(principal, role)]


def validate_role_permissions() -> None:
    """Startup check that the role/permission mapping is closed and total.

    Raises:
        ConfigurationError: If a role has no permission set, a set holds a key
            outside the Permission enum, or a permission lacks a description
    """
    missing_roles = [role.value for role in Role if role not in ROLE_PERMISSIONS]
    if missing_roles:
        raise ConfigurationError(f"Roles without permission set: {', '.join(missing_roles)}")

    for role, permissions in ROLE_PERMISSIONS.items():
        unknown = [p for p in permissions if not isinstance(p, Permission)]
        if unknown:
            raise ConfigurationError(f"Role {role.value!r} grants unknown keys: {unknown!r}")

    undocumented = [p.value for p in Permission if p not in PERMISSION_DESCRIPTIONS]
    if undocumented:
        raise ConfigurationError(f"Permissions without description: {', '.join(undocumented)}")


def permission_description(key: Permission | str) -> str:
    return Permission.parse(key).description


def role_label(role: Role | str) -> str:
    return Role.parse(role).label
