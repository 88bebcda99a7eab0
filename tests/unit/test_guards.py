"""Tests for pipeline stage parsing and the stages that need no database."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.params import Depends as DependsParam

from src.firmguard.api.guards import (
    guard,
    parse_stage,
    permission_stage,
    role_stage,
    superadmin_only,
    tenant_isolation,
)
from src.firmguard.authz.permissions import Permission
from src.firmguard.authz.roles import Role
from src.firmguard.core.exceptions import AccessDenied, AuditWriteError, ConfigurationError, DenialCode
from src.firmguard.models import AuditAction

pytestmark = pytest.mark.unit


@pytest.fixture
def request_stub() -> MagicMock:
    request = MagicMock()
    request.url = "http://test/api/v1/tasks"
    request.method = "POST"
    return request


@pytest.fixture
def audit() -> AsyncMock:
    return AsyncMock()


class TestParseStage:
    def test_tenant_isolation(self):
        assert parse_stage("tenant.isolation") is tenant_isolation

    def test_superadmin_only(self):
        assert parse_stage("superadmin.only") is superadmin_only

    def test_permission_stage(self):
        assert callable(parse_stage("permission:tasks.create"))

    def test_role_stage_with_several_roles(self):
        assert callable(parse_stage("role:admin, consultant"))

    @pytest.mark.parametrize(
        "stage",
        [
            "tenant.isolate",
            "permission",
            "permission:tasks.make",
            "role:",
            "role:wizard",
            "superadmin.only:yes",
            "",
        ],
    )
    def test_invalid_stages_fail_at_definition(self, stage):
        with pytest.raises(ConfigurationError):
            parse_stage(stage)

    def test_guard_builds_dependencies_in_order(self):
        deps = guard("tenant.isolation", "permission:projects.view.own_firm")
        assert len(deps) == 2
        assert all(isinstance(dep, DependsParam) for dep in deps)
        assert deps[0].dependency is tenant_isolation


class TestPermissionStage:
    async def test_granted(self, request_stub, audit, make_principal):
        stage = permission_stage(Permission.TASKS_CREATE)
        await stage(request_stub, make_principal(Role.CONSULTANT), audit)
        audit.log_permission_denied.assert_not_awaited()

    async def test_denied_is_audited_then_raised(self, request_stub, audit, make_principal):
        stage = permission_stage(Permission.TASKS_CREATE)
        with pytest.raises(AccessDenied) as exc_info:
            await stage(request_stub, make_principal(Role.JV_PARTNER), audit)

        assert exc_info.value.code is DenialCode.PERMISSION_DENIED
        audit.log_permission_denied.assert_awaited_once()
        action, _reason, details, _entity = audit.log_permission_denied.await_args.args
        assert action is AuditAction.PERMISSION_DENIED
        assert details["permission"] == "tasks.create"
        assert details["user_role"] == "jv_partner"

    async def test_superadmin_sensitive_ability_records_override(
        self, request_stub, audit, superadmin
    ):
        stage = permission_stage(Permission.USERS_DELETE)
        await stage(request_stub, superadmin, audit)
        audit.log_permission_override.assert_awaited_once()
        assert audit.log_permission_override.await_args.args[0] == "users.delete"

    async def test_superadmin_ordinary_ability_not_recorded(self, request_stub, audit, superadmin):
        await permission_stage(Permission.TASKS_VIEW)(request_stub, superadmin, audit)
        audit.log_permission_override.assert_not_awaited()

    async def test_denial_not_recorded_is_not_silent(self, request_stub, audit, make_principal):
        audit.log_permission_denied.side_effect = AuditWriteError("down")
        stage = permission_stage(Permission.TASKS_CREATE)
        with pytest.raises(AuditWriteError):
            await stage(request_stub, make_principal(Role.JV_PARTNER), audit)


class TestRoleStage:
    async def test_listed_role_passes(self, request_stub, audit, make_principal):
        stage = role_stage((Role.ADMIN, Role.CONSULTANT))
        await stage(request_stub, make_principal(Role.CONSULTANT), audit)
        audit.log_permission_denied.assert_not_awaited()

    async def test_superadmin_must_be_listed(self, request_stub, audit, superadmin):
        stage = role_stage((Role.ADMIN,))
        with pytest.raises(AccessDenied) as exc_info:
            await stage(request_stub, superadmin, audit)
        assert exc_info.value.code is DenialCode.ROLE_DENIED
        assert "admin" in exc_info.value.reason

    async def test_denial_audited(self, request_stub, audit, make_principal):
        with pytest.raises(AccessDenied):
            await role_stage((Role.ADMIN,))(request_stub, make_principal(Role.USER), audit)
        action = audit.log_permission_denied.await_args.args[0]
        assert action is AuditAction.ROLE_ACCESS_DENIED


class TestSuperadminOnly:
    async def test_superadmin_passes(self, request_stub, audit, superadmin):
        await superadmin_only(request_stub, superadmin, audit)
        audit.log_permission_denied.assert_not_awaited()

    async def test_admin_rejected(self, request_stub, audit, make_principal):
        with pytest.raises(AccessDenied) as exc_info:
            await superadmin_only(request_stub, make_principal(Role.ADMIN), audit)
        assert exc_info.value.code is DenialCode.SUPERADMIN_REQUIRED
        action = audit.log_permission_denied.await_args.args[0]
        assert action is AuditAction.SUPERADMIN_REQUIRED
