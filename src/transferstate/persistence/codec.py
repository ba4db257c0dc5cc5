"""
Record Codec - Conversion between entities and stored documents.
"""

from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from transferstate.exceptions import DecodeError
from transferstate.persistence.documents import Document

M = TypeVar("M", bound=BaseModel)


class RecordCodec(Generic[M]):
    """
    Bidirectional mapping between a pydantic model and its document form.

    Usage:
        codec = RecordCodec(TaskRecord)
        doc = codec.to_document(record)
        same = codec.from_document(doc)
    """

    def __init__(self, model: type[M]):
        self._model = model

    @property
    def model(self) -> type[M]:
        return self._model

    def to_document(self, entity: M) -> Document:
        """Encode an entity as a JSON-compatible mapping with camelCase keys."""
        return entity.model_dump(mode="json", by_alias=True)

    def from_document(self, document: Any, key: str | None = None) -> M:
        """
        Decode a document into an entity.

        Raises:
            DecodeError: If the document is not a mapping or fails validation
        """
        if not isinstance(document, Mapping):
            raise DecodeError(
                f"{self._model.__name__} document must be a mapping, "
                f"got {type(document).__name__}",
                key=key,
            )
        try:
            return self._model.model_validate(dict(document))
        except ValidationError as e:
            raise DecodeError(
                f"Invalid {self._model.__name__} document: {e.error_count()} error(s): "
                f"{e.errors()[0]['msg']}",
                key=key,
            ) from e
