"""Store module - the hierarchical realtime store WatchTalk runs on."""

from watchtalk.store.base import Increment, Store, Subscription
from watchtalk.store.memory import MemoryStore
from watchtalk.store.file import FileStore
from watchtalk.store.factory import StoreType, create_store
from watchtalk.store.push_id import PushIdGenerator, generate_push_id

__all__ = [
    "Store", "Subscription", "Increment", "MemoryStore", "FileStore",
    "StoreType", "create_store", "PushIdGenerator", "generate_push_id",
]
