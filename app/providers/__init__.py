from app.providers.base import IdentityProvider


def create_identity_provider(settings, session_factory=None) -> IdentityProvider:
    """Pick the identity provider configured through IDENTITY_PROVIDER."""
    name = settings.IDENTITY_PROVIDER.lower()

    if name == "local":
        from app.db.session import get_session_factory
        from app.providers.local import LocalIdentityProvider
        return LocalIdentityProvider(session_factory or get_session_factory())

    if name == "gotrue":
        from app.providers.gotrue import GoTrueIdentityProvider
        if not settings.GOTRUE_URL or not settings.GOTRUE_API_KEY:
            raise RuntimeError("GOTRUE_URL and GOTRUE_API_KEY must be set for the gotrue provider")
        return GoTrueIdentityProvider(
            base_url=settings.GOTRUE_URL,
            api_key=settings.GOTRUE_API_KEY,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    raise RuntimeError(f"Unknown IDENTITY_PROVIDER: {settings.IDENTITY_PROVIDER}")
