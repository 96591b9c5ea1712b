from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from app.core.auth_context import get_request_host, get_session_token
from app.core.config import settings
from app.core.errors import (
    ExpiredOrInvalidSessionError,
    InvalidCredentialsError,
    ProviderUnavailableError,
)
from app.core.hosts import build_module_url, root_domain, tenant_for_host
from app.core.logger import logger
from app.core.permissions import PermissionTable
from app.core.session import User
from app.dependencies.auth import (
    get_accessible_modules,
    get_authority,
    get_current_user,
    get_host_info,
    get_permission_table,
    require_module_access,
    require_permission,
    resolve_accessible_modules,
    resolve_current_user,
)
from app.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    ModuleLink,
    ModulesResponse,
    OkResponse,
    PermissionTableOut,
    SessionResponse,
    UserOut,
)
from app.services.session_authority import SessionAuthority

router = APIRouter(tags=["Auth"])


def _user_out(user: User, table: PermissionTable, modules) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        role=user.role,
        tenant_id=user.tenant_id,
        permissions=sorted(table.resolve_permissions(user.role)),
        modules=[m.value for m in modules],
    )


@router.post(
    "/login",
    response_model=OkResponse,
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    authority: SessionAuthority = Depends(get_authority),
):
    try:
        _, cookie = authority.authenticate(body.email, body.password, get_request_host(request))
    except InvalidCredentialsError:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid credentials"}
        )
    except ProviderUnavailableError:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "Identity provider unavailable"}
        )

    cookie.apply(response)
    return {"ok": True}


@router.get("/session", response_model=SessionResponse, responses={401: {}})
def session(
    request: Request,
    table: PermissionTable = Depends(get_permission_table),
):
    try:
        user = resolve_current_user(request)
        modules = resolve_accessible_modules(request, user, table)
    except ExpiredOrInvalidSessionError:
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)
    except ProviderUnavailableError:
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    return {"user": _user_out(user, table, modules)}


@router.post("/logout", response_model=OkResponse)
def logout(
    request: Request,
    authority: SessionAuthority = Depends(get_authority),
):
    token = get_session_token(request)
    result = JSONResponse(content={"ok": True})

    if token:
        try:
            authority.revoke(token)
        except ExpiredOrInvalidSessionError:
            logger.info("LOGOUT | token already invalid")
        except ProviderUnavailableError:
            result = JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"error": "Identity provider unavailable"}
            )

    # the cookie goes away regardless of what the provider said
    authority.logout_cookie(get_request_host(request)).expire(result)
    return result


def _tenant_base_host(user: User, request_host: str):
    """slug.root for the user's own tenant, None when either is unknown."""
    root = settings.ROOT_DOMAIN
    if not root:
        tenant = tenant_for_host(request_host)
        root = root_domain(tenant.base_host) if tenant else None
    if not user.tenant_id or not root:
        return None
    return f"{user.tenant_id}.{root}"


@router.get("/modules", response_model=ModulesResponse)
def modules(
    request: Request,
    user: User = Depends(get_current_user),
    accessible=Depends(get_accessible_modules),
):
    base_host = _tenant_base_host(user, get_request_host(request))
    links = []
    for module in accessible:
        url = None
        if base_host:
            try:
                url = build_module_url(base_host, module, request.url.scheme)
            except ValueError:
                logger.warning(f"MODULE URL SKIPPED | tenant={user.tenant_id} | module={module.value}")
        links.append(ModuleLink(module=module.value, url=url))

    return {"tenant": user.tenant_id, "modules": links}


@router.get("/permissions", response_model=PermissionTableOut)
def permission_table(
    user: User = Depends(require_permission("configure_settings")),
    table: PermissionTable = Depends(get_permission_table),
):
    return {
        "version": table.version,
        "roles": {role.value: sorted(perms) for role, perms in table.permissions.items()},
    }


@router.get("/module-access")
def module_access(
    request: Request,
    user: User = Depends(require_module_access),
):
    host = get_host_info(request)
    return {
        "tenant": host.tenant_slug,
        "module": host.module.value if host.module else None,
        "allowed": True,
    }
