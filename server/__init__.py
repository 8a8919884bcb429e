"""
Server package for the Blackfish chat relay.

This package contains all server-side functionality including:
- Client registry and connection lifecycle
- Public broadcast and private message routing
- Configuration and utilities
"""
