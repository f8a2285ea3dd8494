"""Session cache implementation.

Persists the signed-in session on disk so it can be restored by the next
command invocation.
Bounded Context: Session Management
"""
