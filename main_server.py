#!/usr/bin/env python3
"""
Blackfish Chat Relay Server - Main Entry Point

Relays public broadcasts and @name private messages between all connected
terminal and desktop clients, and appends every message to chat.log.

Usage:
    python main_server.py PORT

Optional arguments:
    --host HOST             Bind address (default: 0.0.0.0)
    --max-clients N         Maximum connected participants (default: 1024)
    --logs-dir DIR          Directory for chat.log (default: current directory)
    --idle-timeout SECONDS  Disconnect idle clients (default: never)
    --debug                 Enable debug logging
"""

if __name__ == "__main__":
    import sys

    from server.main_server import main

    sys.exit(main())
