"""Desktop user interface for the chat client."""
