import logging
import os
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
LOG_DIR = PROJECT_ROOT / 'logs'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str = 'pricefeed', level=logging.INFO,
                 log_to_file: bool = False, log_dir=None) -> logging.Logger:
    """
    Configure a logger with a console handler and an optional dated log file

    Args:
        name: Logger name, 'pricefeed' configures the whole package
        level: Logging level
        log_to_file: Also write to <log_dir>/<name>_YYYYMMDD.log
        log_dir: Directory for the log file (default: project logs/)

    Returns:
        Configured logger. Calling again for the same name is a no-op.
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_to_file:
        log_dir = Path(log_dir) if log_dir is not None else LOG_DIR
        os.makedirs(log_dir, exist_ok=True)

        module_name = name.split('.')[-1]
        log_path = log_dir / f"{module_name}_{datetime.now().strftime('%Y%m%d')}.log"

        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info(f'[LOG] Writing to {log_path}')

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger that inherits the 'pricefeed' configuration"""
    return logging.getLogger(name)
