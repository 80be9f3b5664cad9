"""JSON encoding of cached records and the cache error taxonomy."""

from typing import Generic, List, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

M = TypeVar("M", bound=BaseModel)


class CacheError(Exception):
    """Base class for errors handled inside the local caches."""


class DecodeError(CacheError):
    """Persisted bytes could not be decoded."""


class EncodeError(CacheError):
    """A value could not be serialized."""


class RecordNotFound(CacheError):
    """No record matched the id of an update."""

    def __init__(self, record_id):
        self.record_id = record_id
        super().__init__(f"No record with id {record_id}")


class JsonCodec(Generic[M]):
    """Encodes a single model or a list of models to JSON bytes.

    Keys are written by alias, so models with a camelCase alias generator
    produce camelCase documents.
    """

    def __init__(self, model: Type[M]):
        self.model = model
        self._list_adapter = TypeAdapter(List[model])

    def encode_list(self, items: List[M]) -> bytes:
        try:
            return self._list_adapter.dump_json(items, by_alias=True, indent=2)
        except (PydanticSerializationError, ValueError, TypeError) as e:
            raise EncodeError(f"Cannot encode {self.model.__name__} list: {e}") from e

    def decode_list(self, data: bytes) -> List[M]:
        try:
            return self._list_adapter.validate_json(data)
        except ValidationError as e:
            raise DecodeError(f"Cannot decode {self.model.__name__} list: {e}") from e

    def encode(self, item: M) -> bytes:
        try:
            return item.model_dump_json(by_alias=True, indent=2).encode("utf-8")
        except (PydanticSerializationError, ValueError, TypeError) as e:
            raise EncodeError(f"Cannot encode {self.model.__name__}: {e}") from e

    def decode(self, data: bytes) -> M:
        try:
            return self.model.model_validate_json(data)
        except ValidationError as e:
            raise DecodeError(f"Cannot decode {self.model.__name__}: {e}") from e
