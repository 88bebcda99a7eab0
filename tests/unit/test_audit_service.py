"""Unit tests for AuditService."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.firmguard.authz.roles import Role
from src.firmguard.core.exceptions import AuditWriteError
from src.firmguard.core.request_context import clear_request_context, set_request_context
from src.firmguard.models import AuditAction, Document, Project
from src.firmguard.services.audit_service import AuditService, entity_ref

pytestmark = pytest.mark.unit


@pytest.fixture
def mock_audit_repo() -> MagicMock:
    """Create mock audit repository."""
    repo = MagicMock()
    repo.add = MagicMock()
    return repo


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def audit_service(mock_audit_repo, mock_session, make_principal) -> AuditService:
    """AuditService attributed to a consultant of firm 3."""
    principal = make_principal(Role.CONSULTANT, firm_id=3, principal_id=11)
    return AuditService(mock_audit_repo, mock_session, principal)


@pytest.fixture
def failing_session(mock_session) -> AsyncMock:
    mock_session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))
    return mock_session


def added_entry(repo: MagicMock):
    return repo.add.call_args[0][0]


class TestEntityRef:
    def test_model_instance(self):
        assert entity_ref(Project(id=4, title="Bridge")) == ("project", 4)

    def test_explicit_pair(self):
        assert entity_ref(("task", 9)) == ("task", 9)

    def test_none(self):
        assert entity_ref(None) == (None, None)


class TestLog:
    """Tests for the log method."""

    async def test_log_creates_and_commits(self, audit_service, mock_audit_repo, mock_session):
        """log should add an AuditLog and commit it straight away."""
        result = await audit_service.log(AuditAction.USER_LOGIN, ("user", 11))

        assert result is not None
        mock_audit_repo.add.assert_called_once()
        mock_session.commit.assert_awaited_once()

    async def test_log_attributes_entry_to_principal(self, audit_service, mock_audit_repo):
        await audit_service.log(AuditAction.USER_LOGIN)

        entry = added_entry(mock_audit_repo)
        assert entry.principal_id == 11
        assert entry.action_type == "user_login"
        assert entry.details["role"] == "consultant"
        assert entry.details["firm_id"] == 3
        assert entry.details["is_superadmin"] is False

    async def test_log_sets_entity(self, audit_service, mock_audit_repo):
        await audit_service.log(AuditAction.SUPERADMIN_ACCESS, Project(id=5, title="Dam"))

        entry = added_entry(mock_audit_repo)
        assert (entry.entity_type, entry.entity_id) == ("project", 5)

    async def test_log_accepts_plain_string_action(self, audit_service, mock_audit_repo):
        await audit_service.log("custom_event")
        assert added_entry(mock_audit_repo).action_type == "custom_event"

    async def test_log_without_principal(self, mock_audit_repo, mock_session):
        """Entries written before authentication carry no principal."""
        service = AuditService(mock_audit_repo, mock_session)
        await service.log(AuditAction.MISSING_TENANT_SCOPE, metadata={"problems": ["x"]})

        entry = added_entry(mock_audit_repo)
        assert entry.principal_id is None
        assert entry.details == {"problems": ["x"]}

    async def test_log_adds_request_context(self, audit_service, mock_audit_repo):
        """Request metadata from the context var is merged into details."""
        set_request_context(
            ip_address="10.0.0.1",
            user_agent="pytest",
            request_id="req-1",
            url="http://test/api/v1/projects/2",
            method="GET",
        )
        try:
            await audit_service.log(AuditAction.ACCESS_DENIED)
        finally:
            clear_request_context()

        details = added_entry(mock_audit_repo).details
        assert details["ip_address"] == "10.0.0.1"
        assert details["request_id"] == "req-1"
        assert details["method"] == "GET"

    async def test_explicit_metadata_wins_over_context(self, audit_service, mock_audit_repo):
        set_request_context(url="http://test/context")
        try:
            await audit_service.log(AuditAction.ACCESS_DENIED, metadata={"url": "http://test/x"})
        finally:
            clear_request_context()

        assert added_entry(mock_audit_repo).details["url"] == "http://test/x"

    async def test_for_principal_shares_store(self, audit_service, mock_session, make_principal):
        other = audit_service.for_principal(make_principal(Role.ADMIN, principal_id=12))
        assert other.session is mock_session
        assert other.principal.id == 12


class TestWriteFailures:
    """A failed write is a warning unless the entry is critical."""

    async def test_non_critical_failure_returns_none(self, audit_service, failing_session):
        result = await audit_service.log(AuditAction.POTENTIAL_DATA_LEAK)

        assert result is None
        failing_session.rollback.assert_awaited_once()

    async def test_critical_failure_raises(self, audit_service, failing_session):
        with pytest.raises(AuditWriteError):
            await audit_service.log(AuditAction.SCOPE_BYPASS, critical=True)
        failing_session.rollback.assert_awaited_once()

    async def test_denials_are_critical(self, audit_service, failing_session):
        with pytest.raises(AuditWriteError):
            await audit_service.log_permission_denied(AuditAction.PERMISSION_DENIED, "no")

    async def test_scope_bypass_is_critical(self, audit_service, failing_session):
        with pytest.raises(AuditWriteError):
            await audit_service.log_scope_bypass("project", "report")

    async def test_superadmin_access_is_not_critical(self, audit_service, failing_session):
        assert await audit_service.log_superadmin_access(("project", 1), "GET") is None


class TestHelpers:
    async def test_permission_override(self, audit_service, mock_audit_repo):
        await audit_service.log_permission_override("users.delete", ("user", 4), {"url": "u"})

        entry = added_entry(mock_audit_repo)
        assert entry.action_type == "permission_override"
        assert entry.details["ability"] == "users.delete"
        assert entry.details["gate_bypass"] is True
        assert entry.details["url"] == "u"

    async def test_cross_tenant_access_records_resource_firm(self, audit_service, mock_audit_repo):
        document = Document(id=8, name="plan.pdf", firm_id=2)
        await audit_service.log_cross_tenant_access(document, "PATCH", is_write=True)

        entry = added_entry(mock_audit_repo)
        assert entry.action_type == "cross_tenant_access"
        assert (entry.entity_type, entry.entity_id) == ("document", 8)
        assert entry.details["resource_firm_id"] == 2
        assert entry.details["is_write"] is True
        assert entry.details["allowed"] is True

    async def test_cross_tenant_access_without_firm(self, audit_service, mock_audit_repo):
        await audit_service.log_cross_tenant_access(("project", 2), "GET", is_write=False)
        assert "resource_firm_id" not in added_entry(mock_audit_repo).details

    async def test_cross_tenant_access_explicit_resource_firm(self, audit_service, mock_audit_repo):
        await audit_service.log_cross_tenant_access(
            ("user", 5), "GET", is_write=False, resource_firm_id=3
        )
        assert added_entry(mock_audit_repo).details["resource_firm_id"] == 3

    async def test_permission_denied_keeps_reason(self, audit_service, mock_audit_repo):
        await audit_service.log_permission_denied(
            AuditAction.ROLE_ACCESS_DENIED, "role required", {"required_roles": ["admin"]}
        )

        details = added_entry(mock_audit_repo).details
        assert details["reason"] == "role required"
        assert details["required_roles"] == ["admin"]

    async def test_scope_bypass(self, audit_service, mock_audit_repo):
        await audit_service.log_scope_bypass("task", "data export")

        entry = added_entry(mock_audit_repo)
        assert entry.action_type == "scope_bypass"
        assert entry.entity_type == "task"
        assert entry.entity_id is None
        assert entry.details["bypass"] is True
        assert entry.details["reason"] == "data export"

    async def test_list_logs_delegates(self, audit_service, mock_audit_repo):
        mock_audit_repo.list_logs = AsyncMock(return_value=([], None, False))
        assert await audit_service.list_logs(limit=10, action_type="scope_bypass") == (
            [],
            None,
            False,
        )
        mock_audit_repo.list_logs.assert_awaited_once_with(
            cursor=None, limit=10, action_type="scope_bypass", principal_id=None
        )
