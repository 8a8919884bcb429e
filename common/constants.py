"""
Shared constants for the Blackfish chat relay.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 12345

# Limits
MAX_CLIENTS = 1024
MAX_FRAME_SIZE = 4096  # bytes per frame, terminator excluded
MAX_NAME_LENGTH = 31
# Longest line a server sends: a full user list
MAX_SERVER_LINE = MAX_FRAME_SIZE + MAX_CLIENTS * (MAX_NAME_LENGTH + 1)

# Timeouts
SEND_TIMEOUT = 5.0  # seconds allowed for one recipient to drain
CONNECT_TIMEOUT = 10.0

# Framing
FRAME_TERMINATOR = b'\n'
ENCODING = 'utf-8'

# Wire prefixes
PRIVATE_PREFIX = '@'
USER_LIST_PREFIX = '\x01USERS:'
USER_LIST_SEPARATOR = ','

# Server announcements
SERVER_SENDER = 'server'
SERVER_FULL_NOTICE = '*** server full'

# Client commands
QUIT_COMMAND = '/quit'

# Logging
LOG_DIR = '.'
CHAT_LOG_FILE = 'chat.log'
CHAT_LOG_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'
