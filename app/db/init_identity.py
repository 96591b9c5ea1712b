from app.core.logger import logger
from app.db.base import Base
from app.models import identity  # noqa: F401  registers the tables


def init_identity_db(engine):
    logger.info("IDENTITY DB INIT STARTED")
    Base.metadata.create_all(bind=engine)
    logger.info("IDENTITY DB TABLES READY")
