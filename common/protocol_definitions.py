"""
Protocol definitions for the Blackfish chat relay.

This module defines the wire framing and the text formats used in
communication between client and server components. Every frame is one
line of UTF-8 text terminated by a newline.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Union

from common.constants import (
    ENCODING, FRAME_TERMINATOR, MAX_FRAME_SIZE, MAX_NAME_LENGTH,
    PRIVATE_PREFIX, USER_LIST_PREFIX, USER_LIST_SEPARATOR
)


class ChatRelayError(Exception):
    """Base class for chat relay errors."""


class ProtocolError(ChatRelayError):
    """A peer sent something that violates the framing rules."""


class FrameTooLargeError(ProtocolError):
    """A frame exceeded the configured maximum size."""

    def __init__(self, limit: int):
        super().__init__(f"Frame exceeds {limit} bytes")
        self.limit = limit


@dataclass
class PublicMessage:
    """Message delivered to every participant."""
    sender: str
    body: str


@dataclass
class PrivateMessage:
    """Message addressed to one participant by name."""
    sender: str
    target: str
    body: str


ChatMessage = Union[PublicMessage, PrivateMessage]


# ============================================================================
# FRAMING
# ============================================================================

def encode_frame(text: str) -> bytes:
    """Encode one line of text as a wire frame."""
    if '\n' in text:
        raise ProtocolError("Frame text must not contain a newline")
    return text.encode(ENCODING) + FRAME_TERMINATOR


def _strip_terminator(data: bytes) -> bytes:
    if data.endswith(FRAME_TERMINATOR):
        data = data[:-len(FRAME_TERMINATOR)]
    if data.endswith(b'\r'):
        data = data[:-1]
    return data


def decode_frame(data: bytes) -> str:
    """Decode a raw frame, dropping the terminator and a trailing CR."""
    return _strip_terminator(data).decode(ENCODING, errors='replace')


async def read_frame(reader: asyncio.StreamReader, max_size: int = MAX_FRAME_SIZE) -> Optional[str]:
    """
    Read one frame from the stream.

    Returns None on a clean end of stream. A partial line left when the peer
    closes is still delivered as a frame. Raises FrameTooLargeError if the
    line is longer than max_size.
    """
    try:
        data = await reader.readuntil(FRAME_TERMINATOR)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        data = e.partial
    except asyncio.LimitOverrunError:
        raise FrameTooLargeError(max_size)

    if len(_strip_terminator(data)) > max_size:
        raise FrameTooLargeError(max_size)
    return decode_frame(data)


def split_lines(text: str) -> List[str]:
    """Split user input into frame-safe lines, dropping empty ones."""
    return [line for line in text.splitlines() if line.strip()]


# ============================================================================
# MESSAGE FORMATS
# ============================================================================

def parse_chat_line(sender: str, line: str, max_name_length: int = MAX_NAME_LENGTH) -> ChatMessage:
    """
    Classify an inbound chat line.

    A line starting with '@' is private: the target runs up to the first
    space or max_name_length characters, and the body is the rest with the
    separating space removed.
    """
    if not line.startswith(PRIVATE_PREFIX):
        return PublicMessage(sender=sender, body=line)

    rest = line[len(PRIVATE_PREFIX):]
    end = 0
    while end < len(rest) and rest[end] != ' ' and end < max_name_length:
        end += 1
    target = rest[:end]
    body = rest[end:]
    if body.startswith(' '):
        body = body[1:]
    return PrivateMessage(sender=sender, target=target, body=body)


def create_broadcast_line(sender: str, body: str) -> str:
    """Create a broadcast line."""
    return f"{sender}: {body}"


def create_private_line(sender: str, target: str, body: str) -> str:
    """Create a private delivery line."""
    return f"(private) {sender} -> {target}: {body}"


def create_user_list_line(names: List[str]) -> str:
    """Create a user list control line."""
    return USER_LIST_PREFIX + USER_LIST_SEPARATOR.join(names)


def is_user_list_line(line: str) -> bool:
    """Check whether a received line is a user list update."""
    return line.startswith(USER_LIST_PREFIX)


def parse_user_list_line(line: str) -> List[str]:
    """Extract display names from a user list line."""
    payload = line[len(USER_LIST_PREFIX):]
    return [name for name in payload.split(USER_LIST_SEPARATOR) if name]


def is_valid_display_name(name: str) -> bool:
    """A display name must be printable and must not contain the user list separator."""
    return bool(name) and name.isprintable() and USER_LIST_SEPARATOR not in name


def create_join_notice(name: str) -> str:
    return f"*** {name} joined"


def create_leave_notice(name: str) -> str:
    return f"*** {name} left"
