"""Process-wide logging setup, called once by the CLI entry point."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQL echo is far too chatty below WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
