from typing import Optional, Tuple

from fastapi import Depends, HTTPException, Request, status

from app.core.auth_context import get_request_host, get_session_token
from app.core.config import settings
from app.core.errors import (
    ExpiredOrInvalidSessionError,
    ProviderUnavailableError,
    TenantMismatchError,
)
from app.core.hosts import HostInfo, Module, parse_host, tenant_for_host
from app.core.logger import logger
from app.core.permissions import PermissionTable
from app.core.session import User
from app.services.module_access import ModuleOverrideStore
from app.services.session_authority import SessionAuthority


def get_authority(request: Request) -> SessionAuthority:
    return request.app.state.authority


def get_permission_table(request: Request) -> PermissionTable:
    return request.app.state.permission_table


def get_host_info(request: Request) -> HostInfo:
    return parse_host(get_request_host(request))


def get_module_overrides(request: Request) -> Optional[ModuleOverrideStore]:
    return request.app.state.module_overrides


def resolve_current_user(request: Request) -> User:
    """
    Validate the shared cookie and bind the user to the request's tenant.
    Raises domain errors; get_current_user turns them into HTTP errors.
    """
    authority = get_authority(request)
    user = authority.validate(get_session_token(request))

    if settings.ENFORCE_TENANT_MATCH:
        tenant = tenant_for_host(get_request_host(request), settings.ROOT_DOMAIN)
        if tenant is not None and user.tenant_id != tenant.slug:
            logger.warning(
                f"TENANT MISMATCH | user_id={user.id} | host_tenant={tenant.slug}"
            )
            raise TenantMismatchError(tenant.slug, user.tenant_id)

    return user


def get_current_user(request: Request) -> User:
    try:
        return resolve_current_user(request)
    except ExpiredOrInvalidSessionError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    except ProviderUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider unavailable"
        )


def require_permission(permission: str):
    def dependency(
        user: User = Depends(get_current_user),
        table: PermissionTable = Depends(get_permission_table),
    ) -> User:
        if not table.has_permission(user.role, permission):
            logger.info(f"PERMISSION DENIED | user_id={user.id} | permission={permission}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied"
            )
        return user

    return dependency


def resolve_accessible_modules(request: Request, user: User, table: PermissionTable) -> Tuple[Module, ...]:
    store = get_module_overrides(request)
    overrides = store.for_user(user) if store is not None else ()
    return table.accessible_modules(user.role, overrides)


def get_accessible_modules(
    request: Request,
    user: User = Depends(get_current_user),
    table: PermissionTable = Depends(get_permission_table),
) -> Tuple[Module, ...]:
    try:
        return resolve_accessible_modules(request, user, table)
    except ProviderUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity provider unavailable"
        )


def require_module_access(
    user: User = Depends(get_current_user),
    host: HostInfo = Depends(get_host_info),
    modules: Tuple[Module, ...] = Depends(get_accessible_modules),
) -> User:
    if host.module is not None and host.module not in modules:
        logger.info(f"MODULE DENIED | user_id={user.id} | module={host.module.value}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Module not available for this user"
        )
    return user
