"""Route pipeline stages.

Routes declare their authorization pipeline by name::

    @router.get("/{project_id}", dependencies=guard("tenant.isolation", "permission:projects.view.own_firm"))

Stage strings are parsed when the route is defined, so a typo in a stage
name, role or permission key fails at import time instead of letting a
request through.
"""

from collections.abc import Callable, Coroutine
from typing import Any, NoReturn

from fastapi import Depends, Request
from fastapi.params import Depends as DependsParam

from src.firmguard.api.dependencies.auth import CurrentPrincipal
from src.firmguard.api.dependencies.db import DBSession
from src.firmguard.api.dependencies.services import AuditServiceDep
from src.firmguard.authz.access import (
    ResourceAccessChecker,
    parse_resource_id,
    resource_type_for_param,
)
from src.firmguard.authz.permissions import SENSITIVE_ABILITIES, Permission, has_permission
from src.firmguard.authz.request_data import RequestDataValidator
from src.firmguard.authz.roles import Role
from src.firmguard.core.exceptions import (
    AccessDenied,
    ConfigurationError,
    DenialCode,
    MissingTenant,
)
from src.firmguard.core.logging import get_logger
from src.firmguard.models import AuditAction
from src.firmguard.services.audit_service import AuditService

logger = get_logger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

Stage = Callable[..., Coroutine[Any, Any, None]]


def _request_details(request: Request) -> dict[str, Any]:
    return {"url": str(request.url), "method": request.method}


def _path_resources(request: Request) -> list[tuple[str, int]]:
    """Path parameters naming a resource, as (resource_type, id) pairs.

    Raises:
        AccessDenied: If an ``_id`` parameter is not a valid id
    """
    return [
        (resource_type_for_param(name), parse_resource_id(value))
        for name, value in request.path_params.items()
        if name.endswith("_id")
    ]


async def _json_body(request: Request) -> dict[str, Any] | None:
    if request.method in SAFE_METHODS:
        return None
    if not await request.body():
        return None
    try:
        payload = await request.json()
    except ValueError:
        # Malformed bodies are rejected by request validation
        return None
    return payload if isinstance(payload, dict) else None


async def _deny(
    audit: AuditService,
    action: AuditAction,
    error: AccessDenied | MissingTenant,
    request: Request,
    details: dict[str, Any] | None = None,
    entity: tuple[str, int | None] | None = None,
) -> NoReturn:
    """Record a denial, then raise it."""
    logger.warning("Request denied", action_type=action.value, reason=error.reason)
    await audit.log_permission_denied(
        action, error.reason, {**_request_details(request), **(details or {})}, entity
    )
    raise error


async def tenant_isolation(
    request: Request,
    principal: CurrentPrincipal,
    session: DBSession,
    audit: AuditServiceDep,
) -> None:
    """Check path resources and body references against the caller's firm.

    Superadmins pass, but every resource they touch is recorded, and
    resources outside their own firm are additionally recorded as
    cross-tenant access.
    """
    checker = ResourceAccessChecker(session)
    try:
        resources = _path_resources(request)
    except AccessDenied as e:
        await _deny(audit, AuditAction.ACCESS_DENIED, e, request, {"stage": "path"})

    if principal.is_superadmin:
        is_write = request.method not in SAFE_METHODS
        for resource_type, resource_id in resources:
            entity = (resource_type, resource_id)
            await audit.log_superadmin_access(entity, request.method)
            if not await checker.within_firm(principal.firm_id, resource_type, resource_id):
                await audit.log_cross_tenant_access(
                    entity,
                    request.method,
                    is_write=is_write,
                    resource_firm_id=await checker.resource_firm_id(resource_type, resource_id),
                )
        return

    if principal.firm_id is None:
        await _deny(audit, AuditAction.MISSING_TENANT, MissingTenant(), request)

    for resource_type, resource_id in resources:
        if not await checker.check_access(principal, resource_type, resource_id):
            await _deny(
                audit,
                AuditAction.ACCESS_DENIED,
                AccessDenied(f"Access denied: You cannot access this {resource_type}."),
                request,
                {"resource_type": resource_type, "resource_id": resource_id},
                (resource_type, resource_id),
            )

    payload = await _json_body(request)
    if payload:
        try:
            await RequestDataValidator(session, checker).validate(principal, payload)
        except AccessDenied as e:
            await _deny(audit, AuditAction.ACCESS_DENIED, e, request, {"stage": "request_data"})


def permission_stage(permission: Permission) -> Stage:
    async def require_permission(
        request: Request,
        principal: CurrentPrincipal,
        audit: AuditServiceDep,
    ) -> None:
        if principal.is_superadmin:
            if permission in SENSITIVE_ABILITIES:
                await audit.log_permission_override(permission.value, details=_request_details(request))
            return
        if not has_permission(principal, permission):
            await _deny(
                audit,
                AuditAction.PERMISSION_DENIED,
                AccessDenied(
                    "Access denied: You do not have permission to perform this action.",
                    DenialCode.PERMISSION_DENIED,
                ),
                request,
                {"permission": permission.value, "user_role": principal.role.value},
            )

    return require_permission


def role_stage(roles: tuple[Role, ...]) -> Stage:
    async def require_role(
        request: Request,
        principal: CurrentPrincipal,
        audit: AuditServiceDep,
    ) -> None:
        if principal.role in roles:
            return
        role_list = ", ".join(role.value for role in roles)
        await _deny(
            audit,
            AuditAction.ROLE_ACCESS_DENIED,
            AccessDenied(
                f"Access denied: This action requires one of the following roles: {role_list}",
                DenialCode.ROLE_DENIED,
            ),
            request,
            {"required_roles": [role.value for role in roles], "user_role": principal.role.value},
        )

    return require_role


async def superadmin_only(
    request: Request,
    principal: CurrentPrincipal,
    audit: AuditServiceDep,
) -> None:
    if not principal.is_superadmin:
        await _deny(
            audit,
            AuditAction.SUPERADMIN_REQUIRED,
            AccessDenied(
                "Access denied: Superadmin access required.",
                DenialCode.SUPERADMIN_REQUIRED,
            ),
            request,
        )


def parse_stage(stage: str) -> Stage:
    """Turn a stage string into its dependency callable.

    Raises:
        ConfigurationError: For unknown stages, roles or permission keys
    """
    name, _, argument = stage.partition(":")
    if name == "tenant.isolation" and not argument:
        return tenant_isolation
    if name == "superadmin.only" and not argument:
        return superadmin_only
    if name == "permission" and argument:
        return permission_stage(Permission.parse(argument))
    if name == "role" and argument:
        return role_stage(tuple(Role.parse(role.strip()) for role in argument.split(",")))
    raise ConfigurationError(f"Unknown pipeline stage: {stage!r}")


def guard(*stages: str) -> list[DependsParam]:
    """Build route dependencies for the given stages, run in order."""
    return [Depends(parse_stage(stage)) for stage in stages]
