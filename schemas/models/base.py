"""
Base model for MongoDB document models.

PyObjectId bridges BSON ObjectId and Pydantic v2. MongoBaseModel provides
to_mongo() / from_mongo() for moving between model instances and raw
pymongo dicts.
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema

M = TypeVar("M", bound="MongoBaseModel")


class PyObjectId(ObjectId):
    """BSON ObjectId that Pydantic v2 knows how to validate and serialize."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def _validate(cls, v: Any) -> ObjectId:
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError(f"Invalid ObjectId: {v!r}")


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Coerce a str/ObjectId to ObjectId, returning None for invalid input."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class MongoBaseModel(BaseModel):
    """
    Base for document models stored in MongoDB.

    The MongoDB ``_id`` is exposed as ``id``.

    to_mongo()   - model → dict for insert/update (``_id`` dropped when unset)
    from_mongo() - raw pymongo dict → model, or None when passed None
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        data = self.model_dump(by_alias=True, exclude_none=False)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls: type[M], data: Optional[dict]) -> Optional[M]:
        if data is None:
            return None
        return cls.model_validate(data)
