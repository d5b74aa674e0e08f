"""Physical storage backends for sessions."""

from orderflow.sessions.store import SessionStorage
from orderflow.sessions.stores.inmemory import InMemorySessionStorage
from orderflow.sessions.stores.jsonfile import JsonFileSessionStorage

__all__ = [
    "SessionStorage",
    "InMemorySessionStorage",
    "JsonFileSessionStorage",
]
