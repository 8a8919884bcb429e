"""
Client package for the Blackfish chat relay.

This package contains all client-side functionality including:
- Chat messaging
- Terminal and desktop user interfaces
- Configuration and utilities
"""
