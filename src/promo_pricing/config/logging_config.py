"""Logging setup shared by the API and the command-line scripts."""
import logging

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging level and format."""
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)
    logging.getLogger().setLevel(level.upper())
