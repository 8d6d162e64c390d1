"""Couche de persistance : interface abstraite et store en mémoire."""

from collectif_fr.store.base import BaseStore
from collectif_fr.store.memory import MemoryStore

__all__ = ["BaseStore", "MemoryStore"]
