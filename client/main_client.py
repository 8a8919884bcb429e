#!/usr/bin/env python3
"""
Blackfish Chat Relay Client - terminal mode

Prints received chat lines and the user list to the terminal and sends
what the user types. /quit leaves the chat.
"""

import asyncio
import sys
import os
import threading
from typing import List, TextIO

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from client.chat.chat_client import ChatClient
from client.utils.config import ClientConfig
from client.utils.logger import logger
from common.constants import QUIT_COMMAND


class TerminalClient:
    """Interactive chat over stdin/stdout."""

    def __init__(self, host: str, port: int, username: str,
                 stdin: TextIO = None, stdout: TextIO = None):
        self.config = ClientConfig(host, port, username)
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.chat_client = ChatClient(self.config.host, self.config.port, self.config.username)
        self.chat_client.set_message_handler(self.show_message)
        self.chat_client.set_user_list_handler(self.show_users)

    def show_message(self, line: str):
        """Print a chat line."""
        print(line, file=self.stdout, flush=True)

    def show_users(self, users: List[str]):
        """Print the current user list."""
        print(f"[users] {', '.join(users)}", file=self.stdout, flush=True)

    def _start_stdin_reader(self) -> asyncio.Queue:
        # Daemon thread: a blocked readline must not keep the process alive
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        def pump():
            try:
                for line in iter(self.stdin.readline, ''):
                    loop.call_soon_threadsafe(queue.put_nowait, line)
                loop.call_soon_threadsafe(queue.put_nowait, '')
            except RuntimeError:
                # Event loop already closed
                return

        threading.Thread(target=pump, name='stdin-reader', daemon=True).start()
        return queue

    async def read_input(self):
        """Forward stdin lines to the server until /quit or EOF."""
        queue = self._start_stdin_reader()
        while self.chat_client.running:
            user_input = await queue.get()
            if not user_input:
                break
            text = user_input.rstrip('\n')
            if text.strip() == QUIT_COMMAND:
                break
            if text.strip() and not await self.chat_client.send_text(text):
                break

    async def interactive_mode(self) -> bool:
        """Run the client. Returns False if the connection failed."""
        if not await self.chat_client.connect(self.config.connect_timeout):
            return False

        logger.show_interactive_mode_info()
        listener_task = asyncio.create_task(self.chat_client.listen_for_messages())
        input_task = asyncio.create_task(self.read_input())

        try:
            await asyncio.wait({listener_task, input_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            input_task.cancel()
            await self.chat_client.close()
            listener_task.cancel()
            await asyncio.gather(listener_task, input_task, return_exceptions=True)
            logger.info("[INFO] Disconnected from server")
        return True


def run_cli_client(username: str, server_host: str, server_port: int) -> int:
    """Run the terminal client and return an exit status."""
    client = TerminalClient(server_host, server_port, username)
    try:
        ok = asyncio.run(client.interactive_mode())
    except KeyboardInterrupt:
        logger.info("[INFO] Interrupted by user")
        return 0
    return 0 if ok else 1
