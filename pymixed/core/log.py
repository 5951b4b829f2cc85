"""
Logging helpers.

Library modules log through ``logging.getLogger(__name__)`` and never
install handlers. Scripts and notebooks that want to see fit diagnostics
call enable_console_logging() once.
"""

import logging

LOGGER_NAME = 'pymixed'
_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def enable_console_logging(level: str | int = 'INFO') -> logging.Logger:
    """
    Attach a stderr handler to the pymixed logger.

    Calling this repeatedly does not stack handlers.

    Args:
        level: Logging level name ('DEBUG', 'INFO', ...) or number

    Returns:
        The configured 'pymixed' logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not any(getattr(h, '_pymixed_console', False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._pymixed_console = True
        logger.addHandler(handler)
    return logger
