"""Operator checks for tenant isolation consistency.

Runs against the whole database without scoping. The only repair offered is
deleting work items that point at a project which no longer exists;
ownership is never reassigned.
"""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.firmguard.authz.roles import Role
from src.firmguard.core.exceptions import ConfigurationError
from src.firmguard.core.logging import get_logger
from src.firmguard.models import Document, Milestone, Project, ProjectFirm, Requirement, Task, User
from src.firmguard.tenancy.principal import Principal
from src.firmguard.tenancy.scope import TenantScope

logger = get_logger(__name__)

INVALID_PROJECT_REFERENCE = "invalid_project_reference"


@dataclass(frozen=True)
class VerificationIssue:
    check: str
    message: str
    entity_type: str | None = None
    entity_id: int | None = None


@dataclass
class VerificationReport:
    issues: list[VerificationIssue] = field(default_factory=list)
    fixed: list[VerificationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def add(self, check: str, message: str, entity_type: str | None = None, entity_id: int | None = None) -> None:
        self.issues.append(VerificationIssue(check, message, entity_type, entity_id))

    def summary(self) -> dict[str, Any]:
        counts: dict[str, int] = {}
        for issue in self.issues:
            counts[issue.check] = counts.get(issue.check, 0) + 1
        return {"issue_count": len(self.issues), "by_check": counts, "fixed": len(self.fixed)}


class TenantVerifier:
    """Runs every consistency check and collects issues into one report."""

    def __init__(self, session: AsyncSession, scope: TenantScope):
        self.session = session
        self.scope = scope

    async def run(self, fix: bool = False) -> VerificationReport:
        report = VerificationReport()
        self.check_registry(report)
        await self.check_users_without_firm(report)
        await self.check_orphaned_projects(report)
        await self.check_invalid_project_references(report, fix=fix)
        await self.check_document_firm_mismatch(report)
        await self.check_isolation_probe(report)
        logger.info("Tenant verification finished", **report.summary())
        return report

    def check_registry(self, report: VerificationReport) -> None:
        try:
            self.scope.registry.self_check()
        except ConfigurationError as e:
            report.add("scope_registry", str(e))

    async def check_users_without_firm(self, report: VerificationReport) -> None:
        result = await self.session.execute(
            select(User.id, User.email).where(
                User.firm_id.is_(None),  # type: ignore[union-attr]
                User.role != Role.SUPERADMIN.value,
            )
        )
        for user_id, email in result.all():
            report.add("user_without_firm", f"User {email} has no firm", "users", user_id)

    async def check_orphaned_projects(self, report: VerificationReport) -> None:
        result = await self.session.execute(
            select(Project.id, Project.title).where(
                Project.id.not_in(select(ProjectFirm.project_id))  # type: ignore[union-attr]
            )
        )
        for project_id, title in result.all():
            report.add("orphaned_project", f"Project {title!r} has no firm", "projects", project_id)

    async def check_invalid_project_references(self, report: VerificationReport, fix: bool) -> None:
        for model in (Task, Requirement, Milestone):
            result = await self.session.execute(
                select(model.id).where(
                    model.project_id.not_in(select(Project.id))  # type: ignore[attr-defined]
                )
            )
            ids = list(result.scalars().all())
            table = model.__tablename__
            issues = [
                VerificationIssue(
                    INVALID_PROJECT_REFERENCE,
                    f"{model.__name__} {entity_id} references a missing project",
                    table,
                    entity_id,
                )
                for entity_id in ids
            ]
            report.issues.extend(issues)
            if fix and ids:
                await self.session.execute(delete(model).where(model.id.in_(ids)))  # type: ignore[attr-defined]
                await self.session.commit()
                report.fixed.extend(issues)
                logger.warning("Deleted rows with invalid project reference", table=table, ids=ids)

    async def check_document_firm_mismatch(self, report: VerificationReport) -> None:
        edge = select(ProjectFirm.id).where(
            ProjectFirm.project_id == Document.project_id,
            ProjectFirm.firm_id == Document.firm_id,
        )
        result = await self.session.execute(
            select(Document.id).where(
                Document.firm_id.is_not(None),  # type: ignore[union-attr]
                Document.project_id.is_not(None),  # type: ignore[union-attr]
                ~edge.exists(),
            )
        )
        for document_id in result.scalars().all():
            report.add(
                "document_firm_mismatch",
                f"Document {document_id} belongs to a firm not on its project",
                "documents",
                document_id,
            )

    async def check_isolation_probe(self, report: VerificationReport) -> None:
        """Scoped project counts must stay below the total once several firms own projects."""
        total = (await self.session.execute(select(func.count()).select_from(Project))).scalar_one()
        firms = (
            await self.session.execute(select(ProjectFirm.firm_id).distinct().limit(2))
        ).scalars().all()
        if len(firms) < 2:
            return
        for firm_id in firms:
            probe = Principal(id=0, role=Role.USER, firm_id=firm_id)
            query = self.scope.apply_scope(probe, Project, select(func.count(Project.id)))
            visible = (await self.session.execute(query)).scalar_one()
            if visible >= total:
                report.add(
                    "isolation_probe",
                    f"Firm {firm_id} sees {visible} of {total} projects",
                    "firms",
                    firm_id,
                )
