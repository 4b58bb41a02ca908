"""Logging configuration helpers."""

import logging

_HTTP_LOGGERS = ("httpx", "openai")


def configure_logging(level: int | str = logging.INFO) -> None:
    """Send optimizer logs to a single stream handler.

    Repeated calls only change the level. The agent's HTTP client loggers
    stay at WARNING unless the optimizer itself logs at DEBUG.
    """
    logger = logging.getLogger("recipe_optimizer")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    http_level = logging.DEBUG if logger.level <= logging.DEBUG else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
