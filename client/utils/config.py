"""
Client configuration module.

This module handles client-side configuration settings.
"""

from common.constants import DEFAULT_HOST, DEFAULT_PORT, MAX_NAME_LENGTH, CONNECT_TIMEOUT


class ClientConfig:
    """Client configuration class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, username: str = None):
        self.host = host
        self.port = port
        self.username = (username or f"user_{id(self) % 10000}")[:MAX_NAME_LENGTH]

        # Connection settings
        self.connect_timeout = CONNECT_TIMEOUT
