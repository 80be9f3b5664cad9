"""Local caches for offline health data."""

from healthstore.cache.codec import CacheError, DecodeError, EncodeError, JsonCodec, RecordNotFound
from healthstore.cache.diet import DietLocalStorage, DietLogCache
from healthstore.cache.document import DocumentCache, ListDocumentCache
from healthstore.cache.heart_rate import HeartRateHistoryCache
from healthstore.cache.history import LocalHistoryCache

__all__ = [
    "CacheError",
    "DecodeError",
    "DietLocalStorage",
    "DietLogCache",
    "DocumentCache",
    "EncodeError",
    "HeartRateHistoryCache",
    "JsonCodec",
    "ListDocumentCache",
    "LocalHistoryCache",
    "RecordNotFound",
]
