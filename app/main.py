from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import settings
from app.core.logger import configure_logging, logger
from app.core.permissions import load_permission_table
from app.routers import auth
from app.services.session_authority import SessionAuthority


def create_app(provider=None, permission_table=None, module_overrides=None) -> FastAPI:
    configure_logging()

    engine = None
    if provider is None:
        from app.db.session import get_identity_engine, get_session_factory
        from app.providers import create_identity_provider

        if settings.IDENTITY_PROVIDER.lower() == "local":
            engine = get_identity_engine()
            session_factory = get_session_factory(engine)
            provider = create_identity_provider(settings, session_factory)
            if module_overrides is None:
                from app.services.module_access import ModuleOverrideStore
                module_overrides = ModuleOverrideStore(session_factory)
        else:
            provider = create_identity_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            from app.db.init_identity import init_identity_db
            init_identity_db(engine)
        yield
        if engine is not None:
            engine.dispose()

    app = FastAPI(
        title="Hi5Tech Identity",
        version="1.0.0",
        lifespan=lifespan
    )

    # built once, shared by reference, never mutated
    app.state.permission_table = permission_table or load_permission_table(settings.PERMISSIONS_FILE)
    app.state.authority = SessionAuthority(provider)
    # None means role modules only, e.g. with a hosted provider and no identity DB
    app.state.module_overrides = module_overrides

    logger.info(
        f"APP READY | provider={type(provider).__name__} "
        f"| permission_table_version={app.state.permission_table.version} "
        f"| module_overrides={module_overrides is not None}"
    )

    app.include_router(auth.router)
    return app
