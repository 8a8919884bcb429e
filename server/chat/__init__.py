"""
Chat module for server-side messaging functionality.

Handles:
- Participant registry
- Message broadcasting and private delivery
- User list updates
- Connection handling
"""
