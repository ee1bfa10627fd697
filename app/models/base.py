from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Optional, Type, TypeVar
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict
from bson import ObjectId

# Stored ObjectIds surface as plain strings
PyObjectId = Annotated[str, BeforeValidator(str)]

T = TypeVar("T", bound="MongoModel")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


MODEL_CONFIG = ConfigDict(
    populate_by_name=True,
    arbitrary_types_allowed=True,
    extra="ignore",
    # Enum fields are stored as their plain string values
    use_enum_values=True,
    validate_default=True,
)


class EmbeddedModel(BaseModel):
    """Sub-document stored inline in a parent document."""
    model_config = MODEL_CONFIG


class MongoModel(BaseModel):
    """
    Base model for MongoDB documents.

    Unknown fields found in stored documents are dropped on load, so ad hoc
    attributes written by other tools never leak into the typed records.
    """
    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    model_config = MODEL_CONFIG

    @classmethod
    def from_mongo(cls: Type[T], data: Optional[Dict[str, Any]]) -> Optional[T]:
        """Convert a MongoDB document to the model."""
        if not data:
            return None
        data = dict(data)
        id = data.pop("_id", None)
        return cls(id=id, **data)

    def to_mongo(self, exclude_none: bool = False) -> Dict[str, Any]:
        """Convert the model to a MongoDB document, leaving _id to the server."""
        data = self.model_dump(by_alias=True, exclude_none=exclude_none)
        if data.get("_id") is None:
            data.pop("_id", None)
        else:
            data["_id"] = ObjectId(data["_id"])
        return data
