"""
Chat module for client-side messaging functionality.

Handles:
- Sending the display name and chat lines
- Receiving chat lines
- User list updates
"""
