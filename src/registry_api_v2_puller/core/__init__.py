"""Core registry session, auth and types."""
