"""Model exports.

Import from here: `from src.firmguard.models import User, Firm, Project`
"""

from src.firmguard.models.audit import AuditAction, AuditLog
from src.firmguard.models.document import Document
from src.firmguard.models.enums import (
    FirmStatus,
    FirmType,
    RoleInProject,
    UserStatus,
    WorkStatus,
)
from src.firmguard.models.firm import Firm, ProjectFirm
from src.firmguard.models.project import Milestone, Project, Requirement, Task
from src.firmguard.models.user import User

__all__ = [
    # Enums
    "AuditAction",
    "FirmStatus",
    "FirmType",
    "RoleInProject",
    "UserStatus",
    "WorkStatus",
    # Models
    "AuditLog",
    "Document",
    "Firm",
    "Milestone",
    "Project",
    "ProjectFirm",
    "Requirement",
    "Task",
    "User",
]
