"""Single-value JSON documents stored under one key."""

import logging
from typing import Callable, Generic, List, Type, TypeVar

from pydantic import BaseModel

from healthstore.cache.codec import JsonCodec
from healthstore.cache.history import HANDLED_ERRORS
from healthstore.store.kv import KeyValueStore

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class DocumentCache(Generic[M]):
    """A model persisted as one JSON document.

    Reads fall back to ``default()`` when the key is absent or undecodable.
    """

    def __init__(self, store: KeyValueStore, key: str, model: Type[M], default: Callable[[], M]):
        self.store = store
        self.key = key
        self.default = default
        self.codec = JsonCodec(model)

    def load(self) -> M:
        try:
            data = self.store.get(self.key)
            if data is None:
                return self.default()
            return self.codec.decode(data)
        except HANDLED_ERRORS as e:
            logger.warning(f"Error loading {self.key}, using defaults: {e}")
            return self.default()

    def save(self, value: M) -> bool:
        try:
            with self.store.lock(self.key):
                self.store.set(self.key, self.codec.encode(value))
            return True
        except HANDLED_ERRORS as e:
            logger.warning(f"Error saving {self.key}: {e}")
            return False

    def clear(self) -> bool:
        try:
            with self.store.lock(self.key):
                self.store.remove(self.key)
            return True
        except HANDLED_ERRORS as e:
            logger.warning(f"Error clearing {self.key}: {e}")
            return False


class ListDocumentCache(Generic[M]):
    """A list of models replaced wholesale on every save. Empty when absent."""

    def __init__(self, store: KeyValueStore, key: str, model: Type[M]):
        self.store = store
        self.key = key
        self.codec = JsonCodec(model)

    def load(self) -> List[M]:
        try:
            data = self.store.get(self.key)
            if data is None:
                return []
            return self.codec.decode_list(data)
        except HANDLED_ERRORS as e:
            logger.warning(f"Error loading {self.key}: {e}")
            return []

    def save(self, items: List[M]) -> bool:
        try:
            with self.store.lock(self.key):
                self.store.set(self.key, self.codec.encode_list(items))
            logger.debug(f"Cached {len(items)} items under {self.key}")
            return True
        except HANDLED_ERRORS as e:
            logger.warning(f"Error saving {self.key}: {e}")
            return False

    def clear(self) -> bool:
        try:
            with self.store.lock(self.key):
                self.store.remove(self.key)
            return True
        except HANDLED_ERRORS as e:
            logger.warning(f"Error clearing {self.key}: {e}")
            return False
