"""Startup self-check of the tenant scope registry."""

import pytest

from src.firmguard import main
from src.firmguard.core.config import get_settings
from src.firmguard.core.exceptions import ConfigurationError
from src.firmguard.models.tenancy import TenantOwned
from src.firmguard.tenancy.scope import ScopeRegistry, TenantScope
from tests.helpers import audit_entries

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


class Orphaned(TenantOwned):
    __tablename__ = "orphaned"


@pytest.fixture
def broken_scope(monkeypatch: pytest.MonkeyPatch) -> None:
    scope = TenantScope(ScopeRegistry(models=[Orphaned], required_tables=("projects",)))
    monkeypatch.setattr(main, "get_tenant_scope", lambda: scope)


async def test_sound_registry_passes(engine):
    await main.check_tenant_scopes(get_settings())
    assert await audit_entries(engine, "missing_tenant_scope") == []


async def test_misconfiguration_is_fatal_outside_production(engine, broken_scope):
    settings = get_settings().model_copy(update={"app_env": "development"})

    with pytest.raises(ConfigurationError, match="Orphaned"):
        await main.check_tenant_scopes(settings)
    assert await audit_entries(engine, "missing_tenant_scope") == []


async def test_misconfiguration_alerts_in_production(engine, broken_scope):
    settings = get_settings().model_copy(update={"app_env": "production"})

    await main.check_tenant_scopes(settings)

    [entry] = await audit_entries(engine, "missing_tenant_scope")
    assert entry.principal_id is None
    assert "Orphaned is tenant-owned but declares no ownership capability" in (
        entry.details["problems"]
    )
    assert "Table 'projects' has no tenant scope" in entry.details["problems"]
