"""
Message router module.

Classifies an inbound chat line as public or private and hands it to the
broadcast engine.
"""

from common.constants import MAX_NAME_LENGTH
from common.protocol_definitions import PrivateMessage, parse_chat_line
from server.chat.broadcaster import BroadcastEngine
from server.chat.registry import Participant


class MessageRouter:
    """Routes one line at a time for the handler that read it."""

    def __init__(self, broadcaster: BroadcastEngine, max_name_length: int = MAX_NAME_LENGTH):
        self.broadcaster = broadcaster
        self.max_name_length = max_name_length

    async def route(self, sender: Participant, line: str):
        """Dispatch a line from sender and return the parsed message."""
        message = parse_chat_line(sender.display_name, line, self.max_name_length)
        if isinstance(message, PrivateMessage):
            await self.broadcaster.send_private(sender, message.target, message.body)
        else:
            await self.broadcaster.broadcast(message.sender, message.body)
        return message
