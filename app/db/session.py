from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def get_identity_engine(url: str = None):
    return create_engine(url or settings.IDENTITY_DB_URL, pool_pre_ping=True)


def get_session_factory(engine=None):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine or get_identity_engine()
    )
