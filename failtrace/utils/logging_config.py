import logging
import sys
import os
from datetime import datetime

from failtrace.core.config import LOG_DIR

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colors console lines by level; plain text when color is off."""

    cyan = "\x1b[36m"
    green = "\x1b[32m"
    yellow = "\x1b[33m"
    red = "\x1b[31m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: cyan,
        logging.INFO: green,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def __init__(self, use_color: bool = True):
        super().__init__(LOG_FORMAT, datefmt=DATE_FORMAT)
        self.use_color = use_color
        self._plain = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        self._colored = {
            level: logging.Formatter(color + LOG_FORMAT + self.reset, datefmt=DATE_FORMAT)
            for level, color in self.LEVEL_COLORS.items()
        }

    def format(self, record):
        # Custom levels fall back to the plain format
        formatter = self._colored.get(record.levelno) if self.use_color else None
        return (formatter or self._plain).format(record)


def setup_logging(level=logging.INFO, log_dir: str = LOG_DIR, use_color=None):
    """
    Route failtrace logs to stderr, and to a daily file when ``log_dir`` is set.

    Color defaults to on only when stderr is a terminal.
    """
    root_logger = logging.getLogger()

    # Clear existing handlers to prevent duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)

    if use_color is None:
        use_color = sys.stderr.isatty()

    # 1. Console handler (stderr keeps stdout free for test output)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ColoredFormatter(use_color=use_color))
    root_logger.addHandler(console_handler)

    # 2. Optional file handler, one file per day
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(
            os.path.join(log_dir, f"failtrace_{datetime.now().strftime('%Y%m%d')}.log"),
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    failtrace_logger = logging.getLogger("failtrace")
    failtrace_logger.setLevel(level)
    failtrace_logger.propagate = True

    root_logger.info("Logging initialized (console%s).", " + file" if log_dir else "")
