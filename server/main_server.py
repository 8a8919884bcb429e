#!/usr/bin/env python3
"""
Blackfish Chat Relay Server - Main Entry Point

This is the main entry point for the server application.
It wires the registry, broadcast engine and router together and accepts
connections, running one supervised handler task per client.
"""

import argparse
import asyncio
import logging
from typing import Optional, Set

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from server.chat.broadcaster import BroadcastEngine
from server.chat.chat_server import ConnectionHandler
from server.chat.registry import ClientRegistry
from server.chat.router import MessageRouter
from server.utils.config import ServerConfig
from server.utils.logger import ChatLog, logger
from common.constants import DEFAULT_SERVER_HOST, MAX_CLIENTS, LOG_DIR


class RelayServer:
    """Main server class that accepts and supervises client connections."""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.chat_log = ChatLog(self.config.chat_log_path)

        # Core services
        self.registry = ClientRegistry(self.config.max_clients)
        self.broadcaster = BroadcastEngine(self.registry, self.chat_log, self.config.send_timeout)
        self.registry.on_change = self.broadcaster.notify_user_list
        self.router = MessageRouter(self.broadcaster, self.config.max_name_length)

        self.server: Optional[asyncio.AbstractServer] = None
        self.handler_tasks: Set[asyncio.Task] = set()
        self._shutdown: Optional[asyncio.Event] = None

    @property
    def port(self) -> Optional[int]:
        """Port actually bound, useful when configured with port 0."""
        if self.server is None or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Run one connection handler as a supervised task."""
        handler = ConnectionHandler(reader, writer, self.registry, self.broadcaster,
                                    self.router, self.config)
        task = asyncio.current_task()
        self.handler_tasks.add(task)
        try:
            await handler.run()
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.log_error(f"connection handler for {handler.addr}", e)
        finally:
            self.handler_tasks.discard(task)

    async def start(self):
        """Bind the listening socket."""
        self.chat_log.touch()
        self.server = await asyncio.start_server(
            self.handle_client,
            self.config.host,
            self.config.port,
            limit=self.config.stream_limit
        )

        addr = ', '.join(str(sock.getsockname()) for sock in self.server.sockets)
        logger.info(f"Server listening on {addr}")

    async def serve_forever(self):
        """Start the server and accept connections until stopped or cancelled."""
        if self.server is None:
            await self.start()
        self._shutdown = asyncio.Event()
        try:
            await self._shutdown.wait()
        finally:
            await self.stop()

    async def stop(self):
        """Stop accepting, cancel every live handler and wait for them."""
        if self._shutdown is not None:
            self._shutdown.set()
        if self.server is not None:
            self.server.close()

        # Handlers accepted while we wait are cancelled on the next pass
        stopped = 0
        while True:
            tasks = [task for task in self.handler_tasks if not task.done()]
            if not tasks:
                break
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            stopped += len(tasks)
        if stopped:
            logger.info(f"Stopped {stopped} connection handler(s)")

        if self.server is not None:
            await self.server.wait_closed()
            self.server = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Blackfish Chat Relay Server')
    parser.add_argument('port', type=int,
                        help='TCP port to listen on')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                        help=f'Host to bind to (default: {DEFAULT_SERVER_HOST})')
    parser.add_argument('--max-clients', type=int, default=MAX_CLIENTS,
                        help=f'Maximum connected participants (default: {MAX_CLIENTS})')
    parser.add_argument('--logs-dir', type=str, default=LOG_DIR,
                        help='Directory for chat.log (default: current directory)')
    parser.add_argument('--idle-timeout', type=float, default=None,
                        help='Disconnect clients idle this many seconds (default: never)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not 0 <= args.port <= 65535:
        parser.error(f"invalid port: {args.port}")
    if args.max_clients < 1:
        parser.error("--max-clients must be at least 1")

    if args.debug:
        logger.set_level(logging.DEBUG)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        max_clients=args.max_clients,
        logs_dir=args.logs_dir,
        idle_timeout=args.idle_timeout
    )
    server = RelayServer(config)
    try:
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except OSError as e:
        logger.log_error("server", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
