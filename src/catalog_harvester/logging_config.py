"""
Logging setup for harvest runs
"""

import logging
from pathlib import Path
from typing import Optional

from .config_loader import HarvesterConfig


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PACKAGE_LOGGER = 'catalog_harvester'


def configure_logging(config: HarvesterConfig, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure the package logger from the [logging] section

    Args:
        config: Harvester configuration carrying the debug toggle and log file name
        log_dir: Directory for the log file, defaults to ./logs

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if config.debug else logging.INFO)

    # Reconfiguring replaces handlers from a previous run
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if config.log_file_name:
        log_path = (log_dir or Path('logs')) / config.log_file_name
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
