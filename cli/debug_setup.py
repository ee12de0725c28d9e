"""Logging setup for CLI commands"""

import logging
import os
from typing import Optional


DEBUG_LOG_FILE = "relay_debug.log"


def setup_logging(debug: bool, log_level: str) -> Optional[str]:
    """
    Configure the root logger for a CLI run

    Args:
        debug: Switch to DEBUG and append everything to the debug log file
        log_level: Level name used when debug is off

    Returns:
        Absolute path of the debug log file, or None when debug is off
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)

    if not debug:
        return None

    log_file = os.path.abspath(DEBUG_LOG_FILE)
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')  # 'a' to append
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info(f"Debug logging enabled - appending to {log_file}")
    return log_file
