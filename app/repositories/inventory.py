import logging
from typing import List, Optional
from pymongo import ReturnDocument
from app.models.base import utcnow
from app.models.inventory import InventoryItem
from app.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class InventoryRepository(BaseRepository[InventoryItem]):

    async def get_by_item_id(self, item_id: str) -> Optional[InventoryItem]:
        return await self.get_by_field("item_id", item_id)

    async def list_by_category(self, category_id: str) -> List[InventoryItem]:
        return await self.list({"category_id": category_id}, limit=500, sort=[("name", 1)])

    async def deduct_stock(self, item_id: str, quantity: int) -> Optional[InventoryItem]:
        """
        Issue `quantity` units of an item, never taking stock below zero.

        Returns the updated item, or None when the item is unknown.
        """
        # Pipeline update keeps the clamp and the write in one server-side step
        doc = await self.collection.find_one_and_update(
            {"item_id": item_id},
            [{"$set": {
                "quantity": {"$max": [0, {"$subtract": ["$quantity", quantity]}]},
                "updated_at": utcnow(),
            }}],
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            logger.warning(f"Stock deduction skipped: unknown item {item_id}")
            return None
        return self.model_cls.from_mongo(doc)
