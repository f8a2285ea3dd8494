"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (backend API, Supabase auth,
Elasticsearch, local disk, the console) by implementing the interfaces
defined in the domain layer.
"""
