"""
Identity core error taxonomy.

Unknown roles are deliberately absent: they resolve to an empty permission
set instead of raising.
"""


class IdentityError(Exception):
    """Base class for every error raised by the identity core."""


class InvalidModuleError(IdentityError, ValueError):
    """A module value outside of itsm / control / self_service was passed in."""

    def __init__(self, module):
        super().__init__(f"Unknown module: {module!r}")
        self.module = module


class InvalidCredentialsError(IdentityError):
    # generic on purpose, never says whether the e-mail exists
    def __init__(self):
        super().__init__("Invalid credentials")


class ExpiredOrInvalidSessionError(IdentityError):
    def __init__(self, reason: str = "Invalid or expired session"):
        super().__init__(reason)


class ProviderUnavailableError(IdentityError):
    """The identity provider could not be reached or answered with a server error."""


class TenantMismatchError(ExpiredOrInvalidSessionError):
    def __init__(self, host_tenant: str, user_tenant: str):
        super().__init__("Session does not belong to this tenant")
        self.host_tenant = host_tenant
        self.user_tenant = user_tenant
