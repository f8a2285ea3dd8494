"""Application services.

Each service exposes the same methods in demo mode (in-memory fixture data)
and live mode (backend API through the resilient request executor).
"""
