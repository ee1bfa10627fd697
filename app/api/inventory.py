from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException

from app.database import db
from app.guardrails.decorators import require_permission
from app.guardrails.permissions import Permission
from app.models.inventory import InventoryCategory, InventoryItem
from app.models.user import User

router = APIRouter(prefix="/api/inventory", tags=["Inventory"])

@router.get("/categories", response_model=List[InventoryCategory])
async def list_categories(current_user: User = Depends(require_permission(Permission.VIEW_INVENTORY))):
    return await db.categories.list(limit=500, sort=[("name", 1)])

@router.get("", response_model=List[InventoryItem])
async def list_items(
    category_id: Optional[str] = None,
    current_user: User = Depends(require_permission(Permission.VIEW_INVENTORY))
):
    """Items of a category, as offered on the requisition form."""
    if category_id:
        return await db.inventory.list_by_category(category_id)
    return await db.inventory.list(limit=500, sort=[("name", 1)])

@router.get("/{item_id}", response_model=InventoryItem)
async def get_item(item_id: str, current_user: User = Depends(require_permission(Permission.VIEW_INVENTORY))):
    item = await db.inventory.get_by_item_id(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return item
