from __future__ import annotations

import sqlite3
from typing import Any, Callable, Dict, Optional

from config.settings import Settings, get_settings


IndexFactory = Callable[[sqlite3.Connection, Settings], Any]

_REGISTRY: Dict[str, IndexFactory] = {}


def register(name: str, factory: IndexFactory) -> None:
    _REGISTRY[name] = factory


def get_index(name: str, conn: sqlite3.Connection, settings: Optional[Settings] = None):
    if name not in _REGISTRY:
        raise KeyError(f"Unknown geo index backend: {name}")
    return _REGISTRY[name](conn, settings or get_settings())


def available_indexes() -> Dict[str, IndexFactory]:
    return dict(_REGISTRY)
