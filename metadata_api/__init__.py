"""Read-only catalog metadata service with batched object-graph assembly."""

__version__ = "1.0.0"
