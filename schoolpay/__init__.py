"""Teacher salary calculation orchestration layer."""

__version__ = "0.1.0"
