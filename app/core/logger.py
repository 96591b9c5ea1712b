import logging

from app.core.config import settings

logger = logging.getLogger("hi5.identity")


def configure_logging(level: str = None) -> None:
    """Root handler setup, called once by create_app rather than on import."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
