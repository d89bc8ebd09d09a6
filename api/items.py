"""
Item routes, nested under an inventory.

Route prefix: /api/v1/inventories
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.serializers import person_from_row, serialize_item, serialize_items
from auth.dependencies import db_session, get_current_user_id, get_optional_user_id
from database.models import Item, User
from inventory.custom_id import assign_custom_id
from inventory.fields import mask_inactive_values
from inventory.permissions import load_item, load_owned_inventory, load_visible_inventory
from utils.errors import Conflict
from utils.schemas import ItemWrite

logger = logging.getLogger(__name__)

router = APIRouter(tags=["items"])


async def _created_by(session: AsyncSession, item: Item) -> Optional[Dict[str, Any]]:
    if item.created_by_id is None:
        return None
    result = await session.execute(
        select(User.display_name, User.email).where(User.user_id == item.created_by_id)
    )
    row = result.one_or_none()
    return person_from_row(*row) if row else None


@router.get("/{inventory_id}/items")
async def list_items(
    inventory_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> List[Dict[str, Any]]:
    """Items of a visible inventory, newest first."""
    inventory = await load_visible_inventory(session, inventory_id, user_id)
    result = await session.execute(
        select(Item, User.display_name, User.email)
        .outerjoin(User, User.user_id == Item.created_by_id)
        .where(Item.inventory_id == inventory.inventory_id)
        .order_by(Item.created_at.desc())
    )
    return serialize_items(result.all(), inventory)


@router.post("/{inventory_id}/items")
async def create_item(
    inventory_id: str,
    req: ItemWrite,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """
    Add an item. Only the inventory owner may do this.

    The custom ID is claimed from the inventory's counter; values for
    inactive field slots are discarded.
    """
    inventory = await load_owned_inventory(
        session, inventory_id, user_id, message="Only inventory owner can add items"
    )
    custom_id = await assign_custom_id(session, inventory)

    item = Item(
        inventory_id=inventory.inventory_id,
        custom_id=custom_id,
        name=req.name,
        description=req.description or None,
        created_by_id=uuid.UUID(user_id),
        **mask_inactive_values(inventory, req.model_dump()),
    )
    session.add(item)
    try:
        await session.flush()
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("Custom ID collision in inventory %s: %s", inventory_id, custom_id)
        raise Conflict(f"Custom ID {custom_id} already exists in this inventory")

    logger.info("Item %s (%s) created in inventory %s", item.item_id, custom_id, inventory_id)
    return serialize_item(item, inventory, created_by=await _created_by(session, item))


@router.get("/{inventory_id}/items/{item_id}")
async def get_item(
    inventory_id: str,
    item_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    inventory = await load_visible_inventory(session, inventory_id, user_id)
    item = await load_item(session, inventory, item_id)
    return serialize_item(item, inventory, created_by=await _created_by(session, item))


@router.put("/{inventory_id}/items/{item_id}")
async def update_item(
    inventory_id: str,
    item_id: str,
    req: ItemWrite,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Replace name, description and slot values. The custom ID never changes."""
    inventory = await load_owned_inventory(
        session, inventory_id, user_id, message="Only inventory owner can edit items"
    )
    item = await load_item(session, inventory, item_id)

    item.name = req.name
    item.description = req.description or None
    for key, value in mask_inactive_values(inventory, req.model_dump()).items():
        setattr(item, key, value)

    await session.flush()
    await session.commit()
    logger.info("Item %s updated in inventory %s", item.item_id, inventory_id)
    return serialize_item(item, inventory, created_by=await _created_by(session, item))


@router.delete("/{inventory_id}/items/{item_id}")
async def delete_item(
    inventory_id: str,
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    inventory = await load_owned_inventory(
        session, inventory_id, user_id, message="Only inventory owner can delete items"
    )
    item = await load_item(session, inventory, item_id)
    await session.execute(delete(Item).where(Item.item_id == item.item_id))
    await session.commit()
    logger.info("Item %s deleted from inventory %s", item_id, inventory_id)
    return {"success": True}
