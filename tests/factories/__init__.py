"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import UserFactory, FirmFactory, ...
"""

from tests.factories.base import BaseFactory, utc_now
from tests.factories.firm import (
    DocumentFactory,
    FirmFactory,
    MilestoneFactory,
    ProjectFactory,
    ProjectFirmFactory,
    RequirementFactory,
    TaskFactory,
)
from tests.factories.user import DEFAULT_TEST_PASSWORD, UserFactory

__all__ = [
    # Base
    "BaseFactory",
    "utc_now",
    # Firms and projects
    "DocumentFactory",
    "FirmFactory",
    "MilestoneFactory",
    "ProjectFactory",
    "ProjectFirmFactory",
    "RequirementFactory",
    "TaskFactory",
    # Users
    "DEFAULT_TEST_PASSWORD",
    "UserFactory",
]
