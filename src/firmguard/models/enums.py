"""Shared enums for models."""

from enum import Enum


class FirmType(str, Enum):
    """Kind of organisation behind a firm."""

    INTERNAL = "internal"
    JV_PARTNER = "jv_partner"


class FirmStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RoleInProject(str, Enum):
    """Role a firm plays on a project it is associated with."""

    LEAD_JV = "lead_jv"
    SUBCONSULTANT = "subconsultant"
    INTERNAL = "internal"


class WorkStatus(str, Enum):
    """Progress of tasks, requirements and milestones."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
