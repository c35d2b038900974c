import logging

from theo_notes.core.config import settings


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=(level or settings.log_level).upper(),
    )
