"""
Chat server module.

This module owns one participant's lifecycle from accept to disconnect:
handshake, the read/route loop and the single cleanup path.
"""

import asyncio
from enum import Enum
from typing import Optional

from common.constants import SERVER_SENDER, SERVER_FULL_NOTICE
from common.protocol_definitions import (
    FrameTooLargeError, read_frame, encode_frame, create_broadcast_line,
    create_join_notice, create_leave_notice, is_valid_display_name
)
from server.chat.broadcaster import BroadcastEngine
from server.chat.registry import ClientRegistry, Participant, RegistryFullError
from server.chat.router import MessageRouter
from server.utils.config import ServerConfig
from server.utils.logger import logger


class ConnectionState(Enum):
    HANDSHAKING = 'handshaking'
    ACTIVE = 'active'
    CLOSING = 'closing'
    CLOSED = 'closed'


class ConnectionHandler:
    """Handles a single client connection."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 registry: ClientRegistry, broadcaster: BroadcastEngine,
                 router: MessageRouter, config: ServerConfig):
        self.reader = reader
        self.writer = writer
        self.registry = registry
        self.broadcaster = broadcaster
        self.router = router
        self.config = config
        self.addr = writer.get_extra_info('peername')
        self.state = ConnectionState.HANDSHAKING
        self.participant: Optional[Participant] = None

    async def run(self):
        """Drive the connection through its states until it is closed."""
        logger.log_connection(self.addr)
        try:
            if await self.handshake():
                await self.serve()
        except asyncio.CancelledError:
            logger.info(f"Connection cancelled for {self.addr}")
            raise
        finally:
            await self.close()

    async def _read(self) -> Optional[str]:
        read = read_frame(self.reader, self.config.max_frame_size)
        if self.config.idle_timeout is None:
            return await read
        return await asyncio.wait_for(read, timeout=self.config.idle_timeout)

    async def handshake(self) -> bool:
        """Read the display name and join the registry."""
        try:
            frame = await self._read()
        except FrameTooLargeError as e:
            logger.log_rejected(self.addr, str(e))
            return False
        except (asyncio.TimeoutError, ConnectionError, OSError) as e:
            logger.log_rejected(self.addr, f"handshake failed: {e}")
            return False

        name = (frame or '').strip()[:self.config.max_name_length]
        if not name:
            logger.log_rejected(self.addr, "no display name")
            return False
        if not is_valid_display_name(name):
            logger.log_rejected(self.addr, f"invalid display name {name!r}")
            return False

        participant = Participant(display_name=name, writer=self.writer,
                                  reader=self.reader, address=self.addr)
        # Set before joining so a cancelled join is still cleaned up by close()
        self.participant = participant
        try:
            slot = await self.registry.join(participant)
        except RegistryFullError as e:
            logger.log_rejected(self.addr, str(e))
            await self._send_rejection()
            return False

        self.state = ConnectionState.ACTIVE
        logger.log_join(name, slot, self.addr)
        await self.broadcaster.broadcast(SERVER_SENDER, create_join_notice(name))
        return True

    async def serve(self):
        """Read frames and route them until the peer goes away."""
        while self.state is ConnectionState.ACTIVE:
            try:
                frame = await self._read()
            except FrameTooLargeError as e:
                logger.warning(f"Closing '{self.participant.display_name}': {e}")
                break
            except asyncio.TimeoutError:
                logger.info(f"Idle timeout for '{self.participant.display_name}'")
                break
            except (ConnectionError, OSError) as e:
                logger.log_error(f"read from '{self.participant.display_name}'", e)
                break

            if frame is None:
                break
            await self.router.route(self.participant, frame)

    async def close(self):
        """Close the connection, deregister and announce. Runs once."""
        if self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED):
            return
        self.state = ConnectionState.CLOSING

        try:
            await self._close_writer()
        finally:
            # Deregister even if cancelled while the peer is not reading
            participant = self.participant
            if participant is not None and await self.registry.leave(participant):
                logger.log_leave(participant.display_name, self.addr)
                await self.broadcaster.broadcast(SERVER_SENDER, create_leave_notice(participant.display_name))
            self.state = ConnectionState.CLOSED

    async def _send_rejection(self):
        try:
            self.writer.write(encode_frame(create_broadcast_line(SERVER_SENDER, SERVER_FULL_NOTICE)))
            await asyncio.wait_for(self.writer.drain(), timeout=self.config.send_timeout)
        except (asyncio.TimeoutError, ConnectionError, OSError) as e:
            logger.debug(f"Could not send rejection to {self.addr}: {e}")

    async def _close_writer(self):
        try:
            self.writer.close()
            await asyncio.wait_for(self.writer.wait_closed(), timeout=self.config.send_timeout)
        except asyncio.TimeoutError:
            # Peer stopped reading; drop the unsent buffer
            logger.debug(f"Aborting connection {self.addr} after close timeout")
            self.writer.transport.abort()
        except (ConnectionError, OSError) as e:
            logger.debug(f"Error closing connection {self.addr}: {e}")
