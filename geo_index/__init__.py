from . import meilisearch_index, sqlite_index  # noqa: F401 ensure registration
from .registry import available_indexes, get_index, register

__all__ = ["available_indexes", "get_index", "register"]
