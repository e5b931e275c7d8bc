"""Root logger setup, called once from the app factory."""

import logging

from cuptrace.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging() -> None:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT)

    # SQL echo is noisy at INFO; only surface it when debugging queries
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug and level <= logging.DEBUG else logging.WARNING
    )
