from typing import List, Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    email: str
    password: str


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    error: str


class UserOut(BaseModel):
    id: str
    email: str
    role: Optional[str] = None
    tenant_id: Optional[str] = None
    permissions: List[str] = []
    modules: List[str] = []


class SessionResponse(BaseModel):
    user: UserOut


class ModuleLink(BaseModel):
    module: str
    url: Optional[str] = None


class ModulesResponse(BaseModel):
    tenant: Optional[str] = None
    modules: List[ModuleLink]


class PermissionTableOut(BaseModel):
    version: str
    roles: dict
