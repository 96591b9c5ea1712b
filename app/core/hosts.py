"""
Tenant / module host resolution.

Hosts look like:
    tenant:  demoitsm.hi5tech.co.uk
    modules: demoitsm-itsm.hi5tech.co.uk
             demoitsm-control.hi5tech.co.uk
             demoitsm-self.hi5tech.co.uk

The module marker is only recognised at the end of the first label, so
parse_host and build_module_host stay exact inverses of each other.
"""
import ipaddress
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from urllib.parse import urlencode

from app.core.errors import InvalidModuleError


class Module(str, Enum):
    ITSM = "itsm"
    CONTROL = "control"
    SELF_SERVICE = "self_service"


MODULE_MARKERS = {
    Module.ITSM: "itsm",
    Module.CONTROL: "control",
    Module.SELF_SERVICE: "self",
}

MODULE_ORDER = (Module.ITSM, Module.CONTROL, Module.SELF_SERVICE)


@dataclass(frozen=True)
class Tenant:
    slug: str
    base_host: str


@dataclass(frozen=True)
class HostInfo:
    tenant_slug: str
    base_host: str
    module: Optional[Module]

    @property
    def tenant(self) -> Tenant:
        return Tenant(slug=self.tenant_slug, base_host=self.base_host)


def normalize_host(host: str) -> str:
    host = (host or "").strip().lower().rstrip(".")
    if host.startswith("["):
        # IPv6 literal, keep as is minus the port
        return host.split("]")[0] + "]"
    return host.split(":")[0]


def to_module(module: Union[Module, str]) -> Module:
    if isinstance(module, Module):
        return module
    try:
        return Module(module)
    except ValueError:
        raise InvalidModuleError(module)


def parse_host(host: str) -> HostInfo:
    host = normalize_host(host)
    first, sep, rest = host.partition(".")

    for module, marker in MODULE_MARKERS.items():
        suffix = f"-{marker}"
        if sep and first.endswith(suffix) and len(first) > len(suffix):
            slug = first[: -len(suffix)]
            return HostInfo(tenant_slug=slug, base_host=f"{slug}.{rest}", module=module)

    return HostInfo(tenant_slug=first, base_host=host, module=None)


def build_module_host(base_host: str, module: Union[Module, str]) -> str:
    module = to_module(module)
    base_host = normalize_host(base_host)

    slug, sep, rest = base_host.partition(".")
    if not slug or not sep or not rest:
        raise ValueError(f"Not a tenant base host: {base_host!r}")
    if parse_host(base_host).module is not None:
        raise ValueError(f"Base host already carries a module marker: {base_host!r}")

    return f"{slug}-{MODULE_MARKERS[module]}.{rest}"


def _scheme(protocol: str) -> str:
    return (protocol or "https").rstrip(":/")


def build_module_url(base_host: str, module: Union[Module, str], protocol: str = "https") -> str:
    return f"{_scheme(protocol)}://{build_module_host(base_host, module)}/"


def build_login_url(base_host: str, redirect_path: str = "/app", protocol: str = "https") -> str:
    if not redirect_path.startswith("/"):
        redirect_path = f"/{redirect_path}"
    query = urlencode({"redirect": redirect_path})
    return f"{_scheme(protocol)}://{normalize_host(base_host)}/login?{query}"


def root_domain(base_host: str) -> str:
    """demoitsm.hi5tech.co.uk -> hi5tech.co.uk"""
    return normalize_host(base_host).partition(".")[2]


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True


def _has_guessable_root(base_host: str) -> bool:
    # without ROOT_DOMAIN only trust three or more labels after the slug, so
    # the apex of a co.uk style domain never yields Domain=.co.uk
    return base_host.count(".") >= 3


def cookie_domain_for_host(host: str, allowed_root: Optional[str] = None) -> Optional[str]:
    """
    Domain attribute for the shared session cookie, or None where the
    browser would reject one (localhost, bare IPs, preview hosts).
    """
    host = normalize_host(host)
    if not host or _is_ip(host):
        return None

    if allowed_root:
        allowed_root = normalize_host(allowed_root)
        if host == allowed_root or host.endswith(f".{allowed_root}"):
            return f".{allowed_root}"
        return None

    base_host = parse_host(host).base_host
    if not _has_guessable_root(base_host):
        return None
    return f".{root_domain(base_host)}"


def tenant_for_host(host: str, allowed_root: Optional[str] = None) -> Optional[Tenant]:
    """The tenant a request host belongs to, None for localhost, IPs and the bare root."""
    info = parse_host(host)
    if not info.base_host or _is_ip(info.base_host):
        return None

    if allowed_root:
        allowed_root = normalize_host(allowed_root)
        if info.base_host == allowed_root or root_domain(info.base_host) != allowed_root:
            return None
    elif not _has_guessable_root(info.base_host):
        return None
    return info.tenant
