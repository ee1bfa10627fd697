from datetime import datetime
from typing import Optional
from pydantic import Field
from app.models.base import MongoModel, utcnow


class InventoryCategory(MongoModel):
    name: str
    description: Optional[str] = None


class InventoryItem(MongoModel):
    """A stock-keeping item held in stores."""
    item_id: str = Field(..., description="Stores item code")
    name: str
    category_id: str
    quantity: int = Field(0, ge=0)
    reorder_level: int = Field(0, ge=0)
    unit: str = "unit"
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def below_reorder_level(self) -> bool:
        return self.quantity <= self.reorder_level
