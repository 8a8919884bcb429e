"""
Server configuration module.

This module handles server-side configuration settings.
"""

from pathlib import Path
from typing import Optional

from common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, MAX_CLIENTS, MAX_FRAME_SIZE,
    MAX_NAME_LENGTH, SEND_TIMEOUT, LOG_DIR, CHAT_LOG_FILE
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 max_clients: int = MAX_CLIENTS, logs_dir: str = LOG_DIR,
                 idle_timeout: Optional[float] = None):
        self.host = host
        self.port = port

        # Registry settings
        self.max_clients = max_clients

        # Protocol limits
        self.max_frame_size = MAX_FRAME_SIZE
        self.max_name_length = MAX_NAME_LENGTH

        # Logging configuration
        self.logs_dir = logs_dir
        self.chat_log_file = CHAT_LOG_FILE

        # Connection settings
        self.idle_timeout = idle_timeout  # None waits forever
        self.send_timeout = SEND_TIMEOUT

    @property
    def chat_log_path(self) -> Path:
        """Full path of the chat transcript."""
        return Path(self.logs_dir) / self.chat_log_file

    @property
    def stream_limit(self) -> int:
        """Reader buffer limit: one full frame plus CR LF."""
        return self.max_frame_size + 2
