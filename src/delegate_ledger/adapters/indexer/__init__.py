from .client import IndexerClient

__all__ = ["IndexerClient"]
