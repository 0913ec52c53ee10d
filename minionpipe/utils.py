# File: minionpipe/utils.py
# Location: minionpipe/minionpipe/utils.py

"""
Utility functions module.

Provides helper functions for logging setup and opening plain or
gzip-compressed files.
"""

import gzip
import logging
import sys
from typing import Optional

logger = logging.getLogger("minionpipe")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure stderr logging, and optionally a log file, for a process.

    Parameters
    ----------
    level : str
        One of DEBUG, INFO, WARN, ERROR
    log_file : str, optional
        Path to a file receiving the same records as stderr
    """
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )
    numeric_level = LOG_LEVELS[level]
    logging.getLogger().setLevel(numeric_level)
    logging.getLogger("minionpipe").setLevel(numeric_level)

    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setLevel(numeric_level)
        fh.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        logging.getLogger().addHandler(fh)
        logger.debug(f"Logging to file enabled: {log_file}")


def smart_open(filename: str, mode: str = "r", encoding: str = "utf-8"):
    """
    Open a file with automatic gzip support based on file extension.

    Parameters
    ----------
    filename : str
        Path to the file
    mode : str
        File opening mode ('r', 'w', 'rb', 'wt', etc.)
    encoding : str
        Text encoding (ignored for binary modes)

    Returns
    -------
    file object
        Opened file handle
    """
    filename = str(filename)
    if filename.endswith(".gz"):
        if "b" in mode:
            return gzip.open(filename, mode)
        # Ensure text mode for gzip
        if "t" not in mode:
            mode = mode + "t"
        return gzip.open(filename, mode, encoding=encoding)
    if "b" in mode:
        return open(filename, mode)
    return open(filename, mode, encoding=encoding)
