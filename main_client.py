#!/usr/bin/env python3
"""
Blackfish Chat Relay Client - Main Entry Point

Usage:
    python main_client.py HOST PORT USERNAME [--gui]

Modes:
    (default)    Terminal client on stdin/stdout
    --gui        PyQt6 desktop window

Type a line to broadcast it, "@name message" to send it privately, and
/quit to leave.
"""

import sys
import os
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from common.protocol_definitions import is_valid_display_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Blackfish Chat Relay Client')
    parser.add_argument('host', type=str,
                        help='Server host or IP address')
    parser.add_argument('port', type=int,
                        help='Server port')
    parser.add_argument('username', type=str,
                        help='Display name to join with')
    parser.add_argument('--gui', action='store_true',
                        help='Open the desktop window instead of the terminal client')
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not 0 < args.port <= 65535:
        parser.error(f"invalid port: {args.port}")
    if not args.username.strip():
        parser.error("username must not be empty")
    if not is_valid_display_name(args.username.strip()):
        parser.error("username must not contain control characters or ','")

    if args.gui:
        try:
            from client.ui.client_gui import run_gui_client
        except ImportError:
            print("[ERROR] PyQt6 not installed. Install with: pip install PyQt6")
            return 1
        return run_gui_client(args.username, args.host, args.port)

    from client.main_client import run_cli_client
    return run_cli_client(args.username, args.host, args.port)


if __name__ == "__main__":
    sys.exit(main())
