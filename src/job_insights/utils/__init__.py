from .urls import canonicalize_url, index_key

__all__ = ["canonicalize_url", "index_key"]
