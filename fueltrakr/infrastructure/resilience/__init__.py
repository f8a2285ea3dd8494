"""API Resilience Implementations.

Contains the request executor that retries transient failures with
exponential backoff.
Bounded Context: API Resilience
"""
