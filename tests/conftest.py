"""Root test fixtures shared across all test types.

Database-backed fixtures live in tests/integration/conftest.py.
"""

import os

# Settings are read on first import, so the environment is set up front
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./firmguard-test.db")
# Cheap hashing for test users
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")

# ruff: noqa: E402 - Imports must be after env var setup
import pytest

from src.firmguard.authz.roles import Role
from src.firmguard.core.config import get_settings
from src.firmguard.tenancy.principal import Principal

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def make_principal():
    """Build a Principal without touching the database."""

    def _make(
        role: Role = Role.USER,
        firm_id: int | None = 1,
        principal_id: int = 1,
        **kwargs,
    ) -> Principal:
        return Principal(id=principal_id, role=role, firm_id=firm_id, **kwargs)

    return _make


@pytest.fixture
def superadmin(make_principal) -> Principal:
    return make_principal(Role.SUPERADMIN, firm_id=None, principal_id=99)
