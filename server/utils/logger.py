"""
Server logging module.

This module handles server-side logging functionality: console diagnostics
through ServerLogger and the append-only chat transcript through ChatLog.
"""

import logging
from datetime import datetime
from pathlib import Path

from common.constants import CHAT_LOG_TIME_FORMAT


class ServerLogger:
    """Server logging class."""

    def __init__(self, log_level: int = logging.INFO):
        # Set up main logger
        self.logger = logging.getLogger('chat_relay')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(console_handler)

    def set_level(self, log_level: int):
        """Change the level of the logger and its handlers."""
        self.logger.setLevel(log_level)
        for handler in self.logger.handlers:
            handler.setLevel(log_level)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, addr):
        """Log an accepted connection."""
        self.info(f"New connection from {addr}")

    def log_join(self, name: str, slot: int, addr):
        """Log a participant joining the registry."""
        self.info(f"User '{name}' joined from {addr} (slot={slot})")

    def log_leave(self, name: str, addr):
        """Log a participant leaving."""
        self.info(f"User '{name}' ({addr}) disconnected")

    def log_rejected(self, addr, reason: str):
        """Log a connection turned away before joining."""
        self.warning(f"Rejected connection from {addr}: {reason}")

    def log_send_failure(self, name: str, error: Exception):
        """Log a failed delivery to one participant."""
        self.warning(f"Failed to deliver to '{name}': {error}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


class ChatLog:
    """Append-only chat transcript with timestamped lines."""

    def __init__(self, path):
        self.path = Path(path)

    def touch(self):
        """Create the transcript file if it does not exist yet."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create chat log {self.path}: {e}")

    def format_line(self, message: str, when: datetime = None) -> str:
        """Prefix a message with a second-resolution timestamp."""
        when = when or datetime.now()
        return f"[{when.strftime(CHAT_LOG_TIME_FORMAT)}] {message}"

    def append(self, message: str) -> bool:
        """Append one message. Failures are reported, never raised."""
        try:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(self.format_line(message.rstrip('\n')) + '\n')
            return True
        except OSError as e:
            logger.error(f"Failed to write to log file {self.path}: {e}")
            return False


# Global logger instance
logger = ServerLogger()
