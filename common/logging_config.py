import logging
import os
import re
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class SensitiveDataFilter(logging.Filter):
    """
    Mask credentials and the user's home directory in log records.

    Snapshot settings may carry sync tokens, and asset paths usually live under
    the home directory, so both are scrubbed before a record is emitted.
    """

    PATTERNS = [
        (re.compile(r'(token["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(secret["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), r'\1***MASKED***'),
        (re.compile(r'(api[_-]?key["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), r'\1***MASKED***'),
    ]

    def __init__(self, home_dir: Optional[str] = None):
        super().__init__()
        self._home_dir = home_dir if home_dir is not None else str(Path.home())

    def filter(self, record: logging.LogRecord) -> bool:
        """Scrub the message and its positional arguments."""
        if isinstance(record.msg, str):
            record.msg = self._scrub(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(
                self._scrub(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True

    def _scrub(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        if self._home_dir and len(self._home_dir) > 1:
            text = text.replace(self._home_dir, '~')
        return text


def setup_logging(component_name: str, log_level: Optional[str] = None) -> logging.Logger:
    """
    Set up logging for an engine component.

    Child loggers created with logging.getLogger(__name__) inside the engine's
    packages propagate to the root handler installed here.

    Args:
        component_name: Name of the component (e.g., 'engine')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, '_engine_handler', False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler.addFilter(SensitiveDataFilter())
        handler._engine_handler = True
        root.addHandler(handler)

    for handler in root.handlers:
        if getattr(handler, '_engine_handler', False):
            handler.setLevel(level)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)
    return logger
