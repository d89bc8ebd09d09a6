"""
Ownership and visibility rules shared by every inventory-scoped route.

Reads: public inventories are visible to everyone; private ones only to
their creator, and anyone else gets ``NotFound`` so existence is not
revealed.  Writes: creator only, regardless of visibility.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Comment, Inventory, Item
from utils.errors import AuthenticationRequired, NotFound, PermissionDenied


def _to_uuid(value: str | uuid.UUID, *, what: str = "Resource") -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except (ValueError, TypeError):
        raise NotFound(f"{what} not found")


def is_owner(inventory: Inventory, user_id: Optional[str]) -> bool:
    return user_id is not None and str(inventory.creator_id) == str(user_id)


def can_view(inventory: Inventory, user_id: Optional[str]) -> bool:
    return bool(inventory.is_public) or is_owner(inventory, user_id)


def ensure_can_view(inventory: Inventory, user_id: Optional[str]) -> None:
    if not can_view(inventory, user_id):
        raise NotFound("Inventory not found")


def ensure_owner(inventory: Inventory, user_id: Optional[str], message: str = "Permission denied") -> None:
    if user_id is None:
        raise AuthenticationRequired()
    if not is_owner(inventory, user_id):
        raise PermissionDenied(message)


async def load_inventory(session: AsyncSession, inventory_id: str | uuid.UUID) -> Inventory:
    inv_id = _to_uuid(inventory_id, what="Inventory")
    result = await session.execute(
        select(Inventory).where(Inventory.inventory_id == inv_id)
    )
    inventory = result.scalar_one_or_none()
    if inventory is None:
        raise NotFound("Inventory not found")
    return inventory


async def load_visible_inventory(
    session: AsyncSession,
    inventory_id: str | uuid.UUID,
    user_id: Optional[str],
) -> Inventory:
    inventory = await load_inventory(session, inventory_id)
    ensure_can_view(inventory, user_id)
    return inventory


async def load_owned_inventory(
    session: AsyncSession,
    inventory_id: str | uuid.UUID,
    user_id: str,
    message: str = "Permission denied",
) -> Inventory:
    inventory = await load_inventory(session, inventory_id)
    ensure_owner(inventory, user_id, message)
    return inventory


async def load_item(
    session: AsyncSession,
    inventory: Inventory,
    item_id: str | uuid.UUID,
) -> Item:
    """Fetch an item that must belong to ``inventory``."""
    iid = _to_uuid(item_id, what="Item")
    result = await session.execute(
        select(Item).where(
            Item.item_id == iid,
            Item.inventory_id == inventory.inventory_id,
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFound("Item not found")
    return item


async def load_comment(
    session: AsyncSession,
    inventory: Inventory,
    comment_id: str | uuid.UUID,
) -> Comment:
    cid = _to_uuid(comment_id, what="Comment")
    result = await session.execute(
        select(Comment).where(
            Comment.comment_id == cid,
            Comment.inventory_id == inventory.inventory_id,
        )
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFound("Comment not found")
    return comment
