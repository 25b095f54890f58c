"""Company record service.

HTTP CRUD over companies with PostgreSQL storage and Kafka mutation events.
"""
__version__ = "1.0.0"
