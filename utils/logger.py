import logging
import logging.config
from typing import Optional

from config import AppConfig, get_config


def setup_logger(config: Optional[AppConfig] = None, level: Optional[str] = None) -> logging.Logger:
    """Configure root logging (console + rotating file) from AppConfig"""
    config = config or get_config()
    if config.logging.to_file:
        config.logging.log_dir.mkdir(exist_ok=True, parents=True)

    logging_config = config.get_logging_config()
    if level:
        logging_config['loggers']['']['level'] = level.upper()

    logging.config.dictConfig(logging_config)
    return logging.getLogger()
