"""Domain models (users, fuel entries, service results)."""
