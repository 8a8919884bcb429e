"""
Chat client module.

This module handles client-side chat messaging functionality: it owns the
connection, sends the handshake and chat frames, and dispatches received
lines to chat or user-list handlers.
"""

import asyncio
from typing import Callable, List, Optional

from common.constants import CONNECT_TIMEOUT, MAX_SERVER_LINE
from common.protocol_definitions import (
    ProtocolError, encode_frame, read_frame, split_lines,
    is_user_list_line, parse_user_list_line
)
from client.utils.logger import logger


class ChatClient:
    """Client-side chat functionality."""

    def __init__(self, host: str, port: int, username: str):
        self.host = host
        self.port = port
        self.username = username
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.users: List[str] = []
        self.running = False

        self.message_handler: Optional[Callable[[str], None]] = None
        self.user_list_handler: Optional[Callable[[List[str]], None]] = None

    def set_message_handler(self, handler: Callable[[str], None]):
        """Set the handler for incoming chat lines."""
        self.message_handler = handler

    def set_user_list_handler(self, handler: Callable[[List[str]], None]):
        """Set the handler for user list updates."""
        self.user_list_handler = handler

    async def connect(self, timeout: float = CONNECT_TIMEOUT) -> bool:
        """Open the connection and send the display name."""
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, limit=MAX_SERVER_LINE),
                timeout=timeout
            )
        except (asyncio.TimeoutError, OSError) as e:
            logger.log_connection(self.host, self.port, False)
            logger.log_error("connection", e)
            return False

        logger.log_connection(self.host, self.port, True)
        logger.show_login_info(self.username)
        self.running = True
        return await self.send_frame(self.username)

    async def send_frame(self, line: str) -> bool:
        """Send one frame to the server."""
        if not self.writer:
            logger.error("[ERROR] Not connected to server")
            return False

        try:
            self.writer.write(encode_frame(line))
            await self.writer.drain()
            return True
        except (ProtocolError, ConnectionError, OSError) as e:
            logger.error(f"[ERROR] Failed to send message: {e}")
            return False

    async def send_text(self, text: str) -> bool:
        """Send user input, one frame per non-empty line."""
        for line in split_lines(text):
            if not await self.send_frame(line):
                return False
        return True

    def handle_line(self, line: str):
        """Dispatch one received line."""
        if is_user_list_line(line):
            self.users = parse_user_list_line(line)
            if self.user_list_handler:
                self.user_list_handler(self.users)
        elif self.message_handler:
            self.message_handler(line)

    async def listen_for_messages(self):
        """Receive lines until the server closes the connection."""
        try:
            while self.running:
                line = await read_frame(self.reader, MAX_SERVER_LINE)
                if line is None:
                    logger.info("[INFO] Server closed connection")
                    break
                self.handle_line(line)
        except ProtocolError as e:
            logger.error(f"[ERROR] Bad frame from server: {e}")
        except (ConnectionError, OSError) as e:
            logger.error(f"[ERROR] Connection lost: {e}")
        finally:
            self.running = False

    async def close(self):
        """Close the connection."""
        self.running = False
        if self.writer:
            try:
                self.writer.close()
                await self.writer.wait_closed()
            except (ConnectionError, OSError):
                pass
            self.writer = None
