from src.storage.json_store import JsonCollection, PersistenceError

__all__ = [
    "JsonCollection",
    "PersistenceError",
]
