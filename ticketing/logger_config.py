"""Centralized logging configuration."""

import sys

from loguru import logger

from ticketing import config

log_format = ' | '.join(
    (
        '<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>',
        '<lvl>{level:<8}</>',
        '<c>{name}::{function}:{line}</>',
        '{message}',
    )
)

# Remove default handler to avoid duplicate output
logger.remove()
logger.add(sys.stdout, format=log_format, level=config.LOG_LEVEL)

if config.LOG_DIR:
    logger.add(
        f'{config.LOG_DIR}/{{time:YYYY-MM-DD}}.log',
        format=log_format,
        level=config.LOG_LEVEL,
        rotation='1 day',
        retention='30 days',
        compression='zip',
        enqueue=True,
    )

__all__ = ['logger']
