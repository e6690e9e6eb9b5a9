"""Store adapters."""

from dareroom.infra.store import Store, open_store

__all__ = ["Store", "open_store"]
