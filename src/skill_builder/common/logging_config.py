"""
Colored console logging for the skill-builder CLI.

Log records go to stderr so that command output on stdout stays clean for
piping. Level names are colored, and records from the storage and resolver
layers get a colored logger name so that fallback decisions stand out.
"""

import logging
import os
import sys
from typing import Optional, TextIO


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'


DEFAULT_FORMAT = '%(asctime)s | %(levelname)-5s | %(name)s | %(message)s'
DEFAULT_DATE_FORMAT = '%H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors level names and storage component logger names.

    Color scheme:
    - DEBUG: Cyan
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Bold Red
    - Storage and resolver loggers: Magenta component names
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.CYAN,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    COMPONENT_PREFIXES = ('skill_builder.storage', 'skill_builder.resolver')

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
        stream: Optional[TextIO] = None,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and self.supports_color(stream or sys.stderr)

    @staticmethod
    def supports_color(stream: TextIO) -> bool:
        """NO_COLOR wins over FORCE_COLOR; otherwise color only on a TTY."""
        if os.environ.get('NO_COLOR'):
            return False
        if os.environ.get('FORCE_COLOR'):
            return True
        isatty = getattr(stream, 'isatty', None)
        if isatty is None or not isatty():
            return False
        if sys.platform == 'win32':
            return bool(os.environ.get('ANSICON') or os.environ.get('WT_SESSION'))
        return True

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        levelname_orig = record.levelname
        name_orig = record.name

        level_color = self.LEVEL_COLORS.get(record.levelno, '')
        record.levelname = f"{level_color}{record.levelname}{Colors.RESET}"
        if record.name.startswith(self.COMPONENT_PREFIXES):
            record.name = f"{Colors.MAGENTA}{record.name}{Colors.RESET}"

        try:
            return super().format(record)
        finally:
            record.levelname = levelname_orig
            record.name = name_orig


def parse_level(level) -> int:
    """Accept a level name ("debug", "INFO") or number."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_colored_logging(
    level=logging.WARNING,
    format_string: Optional[str] = None,
    date_format: Optional[str] = None,
    use_colors: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Install a single colored stderr handler on the root logger.

    Calling it again replaces the previous handler rather than stacking a
    second one. Returns the installed handler.

    Example:
        >>> from skill_builder.common.logging_config import setup_colored_logging
        >>> setup_colored_logging("debug")
    """
    level = parse_level(level)
    stream = stream or sys.stderr

    formatter = ColoredFormatter(
        fmt=format_string or DEFAULT_FORMAT,
        datefmt=date_format or DEFAULT_DATE_FORMAT,
        use_colors=use_colors,
        stream=stream,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # botocore is very chatty at DEBUG
    for noisy in ('botocore', 'boto3', 's3transfer', 'urllib3', 'httpx', 'httpcore'):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return console_handler
