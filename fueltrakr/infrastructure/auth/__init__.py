"""Authentication backend adapters."""
