"""Integration tests for firm scoping of queries and repositories.

Two firms, each on its own project. Every scoped read must show a firm only
its own side, and a superadmin everything.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.firmguard.authz.roles import Role
from src.firmguard.models import AuditLog, Document, Firm, Milestone, Project, Task, User
from src.firmguard.repositories import (
    DocumentRepository,
    ProjectRepository,
    TaskRepository,
    UserRepository,
)
from src.firmguard.tenancy.principal import Principal
from src.firmguard.tenancy.scope import TenantScope
from tests.factories import DocumentFactory, MilestoneFactory, TaskFactory
from tests.helpers import World, create_firm, create_project, link_firm, principal_for

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


async def scoped_ids(session: AsyncSession, principal: Principal, model) -> set[int]:
    result = await session.execute(TenantScope().select(principal, model))
    return {row.id for row in result.scalars().all()}


class TestProjectScope:
    async def test_each_firm_sees_only_its_project(self, db_session, world: World):
        assert await scoped_ids(db_session, principal_for(world.user1), Project) == {world.p1.id}
        assert await scoped_ids(db_session, principal_for(world.user2), Project) == {world.p2.id}

    async def test_superadmin_sees_all(self, db_session, world: World):
        ids = await scoped_ids(db_session, principal_for(world.superadmin), Project)
        assert ids == {world.p1.id, world.p2.id}

    async def test_firmless_user_sees_nothing(self, db_session, world: World):
        assert await scoped_ids(db_session, principal_for(world.firmless), Project) == set()

    async def test_shared_project_visible_to_both(self, db_session, world: World):
        shared = await create_project(db_session, world.f1, world.f2, title="Joint venture")
        await db_session.commit()

        assert shared.id in await scoped_ids(db_session, principal_for(world.user1), Project)
        assert shared.id in await scoped_ids(db_session, principal_for(world.user2), Project)

    async def test_project_without_firm_hidden(self, db_session, world: World):
        orphan = await create_project(db_session, title="Nobody's")
        await db_session.commit()

        for user in (world.user1, world.user2):
            assert orphan.id not in await scoped_ids(db_session, principal_for(user), Project)


class TestProjectOwnedScope:
    async def test_tasks_follow_their_project(self, db_session, world: World):
        t1 = TaskFactory.build(project_id=world.p1.id)
        t2 = TaskFactory.build(project_id=world.p2.id)
        db_session.add_all([t1, t2])
        await db_session.commit()

        assert await scoped_ids(db_session, principal_for(world.user1), Task) == {t1.id}
        assert await scoped_ids(db_session, principal_for(world.user2), Task) == {t2.id}

    async def test_milestones_follow_their_project(self, db_session, world: World):
        m2 = MilestoneFactory.build(project_id=world.p2.id)
        db_session.add(m2)
        await db_session.commit()

        assert await scoped_ids(db_session, principal_for(world.user1), Milestone) == set()
        assert await scoped_ids(db_session, principal_for(world.user2), Milestone) == {m2.id}

    async def test_partner_joining_project_gains_its_tasks(self, db_session, world: World):
        task = TaskFactory.build(project_id=world.p2.id)
        db_session.add(task)
        await db_session.commit()
        assert task.id not in await scoped_ids(db_session, principal_for(world.user1), Task)

        await link_firm(db_session, world.p2, world.f1)
        await db_session.commit()
        assert task.id in await scoped_ids(db_session, principal_for(world.user1), Task)


class TestDocumentScope:
    """Documents may hang off a firm, a project, both, or neither."""

    async def test_firm_only_document(self, db_session, world: World):
        doc = DocumentFactory.build(firm_id=world.f1.id)
        db_session.add(doc)
        await db_session.commit()

        assert doc.id in await scoped_ids(db_session, principal_for(world.user1), Document)
        assert doc.id not in await scoped_ids(db_session, principal_for(world.user2), Document)

    async def test_project_only_document(self, db_session, world: World):
        doc = DocumentFactory.build(project_id=world.p2.id)
        db_session.add(doc)
        await db_session.commit()

        assert doc.id not in await scoped_ids(db_session, principal_for(world.user1), Document)
        assert doc.id in await scoped_ids(db_session, principal_for(world.user2), Document)

    async def test_both_references_must_match(self, db_session, world: World):
        shared = await create_project(db_session, world.f1, world.f2, title="Shared")
        # Other firm's document on a shared project stays private
        doc = DocumentFactory.build(project_id=shared.id, firm_id=world.f2.id)
        db_session.add(doc)
        await db_session.commit()

        assert doc.id not in await scoped_ids(db_session, principal_for(world.user1), Document)
        assert doc.id in await scoped_ids(db_session, principal_for(world.user2), Document)

    async def test_own_firm_document_on_foreign_project_hidden(self, db_session, world: World):
        doc = DocumentFactory.build(project_id=world.p2.id, firm_id=world.f1.id)
        db_session.add(doc)
        await db_session.commit()

        assert doc.id not in await scoped_ids(db_session, principal_for(world.user1), Document)

    async def test_orphaned_document_hidden_from_everyone_but_superadmin(
        self, db_session, world: World
    ):
        doc = DocumentFactory.build()
        db_session.add(doc)
        await db_session.commit()

        assert doc.id not in await scoped_ids(db_session, principal_for(world.user1), Document)
        assert doc.id in await scoped_ids(db_session, principal_for(world.superadmin), Document)


class TestFirmAndUserScope:
    async def test_users_of_own_firm_only(self, db_session, world: World):
        ids = await scoped_ids(db_session, principal_for(world.user1), User)
        assert ids == {world.admin1.id, world.user1.id, world.superadmin.id}

    async def test_firm_sees_itself_and_partners(self, db_session, world: World):
        f3 = await create_firm(db_session, name="Firm Three")
        await create_project(db_session, world.f1, f3, title="Joint")
        await db_session.commit()

        assert await scoped_ids(db_session, principal_for(world.user1), Firm) == {
            world.f1.id,
            f3.id,
        }
        assert await scoped_ids(db_session, principal_for(world.user2), Firm) == {world.f2.id}

    async def test_unregistered_model_returns_nothing(self, db_session, world: World, make_audit):
        await make_audit(principal_for(world.user1)).log("user_login")
        result = await db_session.execute(
            TenantScope().apply_scope(principal_for(world.user1), AuditLog, select(AuditLog))
        )
        assert result.scalars().all() == []


class TestScopedRepositories:
    async def test_get_by_id_hides_other_firm(self, db_session, world: World):
        repo = ProjectRepository(db_session, principal_for(world.user1))
        assert await repo.get_by_id(world.p1.id) is not None
        assert await repo.get_by_id(world.p2.id) is None

    async def test_list_page_is_scoped(self, db_session, world: World):
        for _ in range(3):
            db_session.add(TaskFactory.build(project_id=world.p1.id))
        db_session.add(TaskFactory.build(project_id=world.p2.id))
        await db_session.commit()

        repo = TaskRepository(db_session, principal_for(world.user1))
        first, cursor, has_more = await repo.list_page(limit=2)
        assert len(first) == 2
        assert has_more
        rest, _, has_more = await repo.list_page(cursor=cursor, limit=2)
        assert len(rest) == 1
        assert not has_more
        assert {t.project_id for t in first + rest} == {world.p1.id}

    async def test_filter_on_other_firm_project_is_empty(self, db_session, world: World):
        db_session.add(TaskFactory.build(project_id=world.p2.id))
        await db_session.commit()

        repo = TaskRepository(db_session, principal_for(world.user1))
        query = repo.scoped(select(Task).where(Task.project_id == world.p2.id))
        assert (await db_session.execute(query)).scalars().all() == []

    async def test_create_stamps_firm(self, db_session, world: World):
        repo = DocumentRepository(db_session, principal_for(world.user1))
        doc = await repo.create(DocumentFactory.build(project_id=world.p1.id))
        await db_session.commit()
        assert doc.firm_id == world.f1.id

    async def test_user_lookup_is_scoped(self, db_session, world: World):
        repo = UserRepository(db_session, principal_for(world.user1))
        assert await repo.get_by_id(world.user2.id) is None
        assert await repo.get_by_id(world.admin1.id) is not None

    async def test_superadmin_repository_unscoped(self, db_session, world: World):
        repo = ProjectRepository(db_session, principal_for(world.superadmin))
        assert {p.id for p in await repo.list_all()} == {world.p1.id, world.p2.id}

    async def test_principal_firm_change_takes_effect(self, db_session, world: World):
        """Scope is computed from the principal given, never cached per user."""
        moved = Principal(id=world.user1.id, role=Role.USER, firm_id=world.f2.id)
        repo = ProjectRepository(db_session, moved)
        assert {p.id for p in await repo.list_all()} == {world.p2.id}


class TestScopeProperties:
    @pytest.fixture
    async def foreign_rows(self, db_session, world: World) -> dict[type, int]:
        """One row of every project-owned or firm-owned type, all belonging to f2."""
        rows = {
            Task: TaskFactory.build(project_id=world.p2.id),
            Milestone: MilestoneFactory.build(project_id=world.p2.id),
            Document: DocumentFactory.build(project_id=world.p2.id, firm_id=world.f2.id),
        }
        db_session.add_all(rows.values())
        await db_session.commit()
        ids = {model: row.id for model, row in rows.items()}
        ids.update({Project: world.p2.id, Firm: world.f2.id, User: world.user2.id})
        return ids

    @pytest.mark.parametrize("model", [Project, Firm, User, Task, Milestone, Document])
    @pytest.mark.parametrize("role", [Role.USER, Role.ADMIN, Role.JV_PARTNER])
    async def test_other_firm_rows_never_returned(
        self, db_session, world: World, foreign_rows, model, role
    ):
        principal = Principal(id=world.user1.id, role=role, firm_id=world.f1.id)
        assert foreign_rows[model] not in await scoped_ids(db_session, principal, model)

    @pytest.mark.parametrize("model", [Project, Firm, User, Task, Milestone, Document])
    async def test_superadmin_scope_equals_unscoped(
        self, db_session, world: World, foreign_rows, model
    ):
        unscoped = {row.id for row in (await db_session.execute(select(model))).scalars().all()}
        assert await scoped_ids(db_session, principal_for(world.superadmin), model) == unscoped

    @pytest.mark.parametrize("model", [Project, Firm, User, Task, Document])
    async def test_applying_scope_twice_is_idempotent(
        self, db_session, world: World, foreign_rows, model
    ):
        scope = TenantScope()
        principal = principal_for(world.user2)
        once = scope.select(principal, model)
        twice = scope.apply_scope(principal, model, once)

        first = {row.id for row in (await db_session.execute(once)).scalars().all()}
        second = {row.id for row in (await db_session.execute(twice)).scalars().all()}
        assert first == second
        assert first


class TestBypassCreatedDocument:
    async def test_document_written_by_superadmin_for_other_firm(
        self, db_session, world: World, make_audit
    ):
        """Created on the privileged path for f2: hidden from f1, visible through a bypass."""
        superadmin = principal_for(world.superadmin)
        repo = DocumentRepository(db_session, superadmin)
        document = await repo.create(DocumentFactory.build(firm_id=world.f2.id))
        await db_session.commit()
        assert document.firm_id == world.f2.id

        user_repo = DocumentRepository(db_session, principal_for(world.user1))
        assert document.id not in {d.id for d in await user_repo.list_all()}

        query = await TenantScope().bypass_scope(
            superadmin, Document, "support ticket", make_audit(superadmin)
        )
        visible = {d.id for d in (await db_session.execute(query)).scalars().all()}
        assert document.id in visible
