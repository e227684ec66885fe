"""Configuration validation and task partitioning for Redis connectors."""

__version__ = "0.1.0"
