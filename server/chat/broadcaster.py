"""
Broadcast engine module.

Formats outgoing lines and fans them out to registered participants. Every
fan-out works on a registry snapshot so a slow receiver never holds the
registry lock.
"""

import asyncio
from typing import Iterable

from common.constants import SEND_TIMEOUT
from common.protocol_definitions import (
    encode_frame, create_broadcast_line, create_private_line, create_user_list_line
)
from server.chat.registry import ClientRegistry, Participant
from server.utils.logger import ChatLog, logger


class BroadcastEngine:
    """Best-effort delivery of chat lines to participants."""

    def __init__(self, registry: ClientRegistry, chat_log: ChatLog,
                 send_timeout: float = SEND_TIMEOUT):
        self.registry = registry
        self.chat_log = chat_log
        self.send_timeout = send_timeout

    async def send_line(self, participant: Participant, line: str) -> bool:
        """Send one line to one participant. Failures are logged, not raised."""
        try:
            participant.writer.write(encode_frame(line))
            await asyncio.wait_for(participant.writer.drain(), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.log_send_failure(participant.display_name, TimeoutError("send timed out"))
        except (ConnectionError, OSError, RuntimeError) as e:
            logger.log_send_failure(participant.display_name, e)
        return False

    async def fan_out(self, recipients: Iterable[Participant], line: str) -> int:
        """Send a line to each recipient in turn. Returns the delivered count."""
        delivered = 0
        for participant in recipients:
            if await self.send_line(participant, line):
                delivered += 1
        return delivered

    async def broadcast(self, sender_label: str, body: str) -> int:
        """
        Deliver "<sender_label>: <body>" to every registered participant.

        The line is appended to the chat log once, whatever the delivery
        outcome.
        """
        line = create_broadcast_line(sender_label, body)
        recipients = await self.registry.snapshot()
        delivered = await self.fan_out(recipients, line)
        logger.debug(f"[BROADCAST] {line!r} delivered to {delivered}/{len(recipients)}")
        self.chat_log.append(line)
        return delivered

    async def send_private(self, sender: Participant, target_name: str, body: str) -> bool:
        """
        Deliver a private line to the named target and echo it to the sender.

        Returns True if the target was found. A miss still echoes and logs.
        """
        line = create_private_line(sender.display_name, target_name, body)
        self.chat_log.append(line)

        target = await self.registry.find_by_name(target_name)
        if target is not None and target is not sender:
            await self.send_line(target, line)
        elif target is None:
            logger.debug(f"Private message from '{sender.display_name}' to unknown '{target_name}'")
        await self.send_line(sender, line)
        return target is not None

    async def notify_user_list(self) -> int:
        """Send the current user list to every registered participant."""
        recipients = await self.registry.snapshot()
        line = create_user_list_line([p.display_name for p in recipients])
        return await self.fan_out(recipients, line)
