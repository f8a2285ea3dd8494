"""Elasticsearch index layer.

Index provisioning plus document access for the ``users`` and
``fuel_entries`` collections.
Bounded Context: Search & Indexing
"""
