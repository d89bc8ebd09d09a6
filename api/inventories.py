"""
Inventory routes.

Route prefix: /api/v1/inventories
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.serializers import person_from_row, serialize_comment, serialize_inventory, serialize_items
from auth.dependencies import db_session, get_current_user_id, get_optional_user_id
from config.settings import config
from database.models import Category, Comment, Inventory, Item, User
from inventory.fields import clean_field_definitions
from inventory.permissions import load_owned_inventory, load_visible_inventory
from utils.schemas import InventoryCreate, InventoryUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["inventories"])


def _count_items():
    return (
        select(func.count(Item.item_id))
        .where(Item.inventory_id == Inventory.inventory_id)
        .correlate(Inventory)
        .scalar_subquery()
    )


def _count_comments():
    return (
        select(func.count(Comment.comment_id))
        .where(Comment.inventory_id == Inventory.inventory_id)
        .correlate(Inventory)
        .scalar_subquery()
    )


async def get_or_create_category(session: AsyncSession, name: Optional[str]) -> Optional[int]:
    """Category id for ``name``; ``None``/blank/"Uncategorized" mean no category."""
    name = (name or "").strip()
    if not name or name == "Uncategorized":
        return None
    result = await session.execute(select(Category).where(Category.name == name))
    category = result.scalar_one_or_none()
    if category is None:
        category = Category(name=name)
        session.add(category)
        await session.flush()
    return category.category_id


async def _category_name(session: AsyncSession, category_id: Optional[int]) -> Optional[str]:
    if category_id is None:
        return None
    result = await session.execute(select(Category.name).where(Category.category_id == category_id))
    return result.scalar_one_or_none()


async def _creator(session: AsyncSession, inventory: Inventory) -> Optional[Dict[str, Any]]:
    result = await session.execute(
        select(User.display_name, User.email).where(User.user_id == inventory.creator_id)
    )
    row = result.one_or_none()
    return person_from_row(*row) if row else None


# ── Endpoints ──────────────────────────────────────────────────────────


@router.get("")
async def list_inventories(
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> List[Dict[str, Any]]:
    """Public inventories plus the caller's own, most recently updated first."""
    visible = Inventory.is_public.is_(True)
    if user_id is not None:
        visible = or_(visible, Inventory.creator_id == uuid.UUID(user_id))

    result = await session.execute(
        select(
            Inventory,
            Category.name,
            User.display_name,
            User.email,
            _count_items().label("item_count"),
            _count_comments().label("comment_count"),
        )
        .outerjoin(Category, Category.category_id == Inventory.category_id)
        .outerjoin(User, User.user_id == Inventory.creator_id)
        .where(visible)
        .order_by(Inventory.updated_at.desc())
    )
    return [
        serialize_inventory(
            inv,
            category_name=category_name,
            creator=person_from_row(name, email),
            item_count=item_count,
            comment_count=comment_count,
        )
        for inv, category_name, name, email, item_count, comment_count in result.all()
    ]


@router.post("")
async def create_inventory(
    req: InventoryCreate,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    category_id = await get_or_create_category(session, req.category)
    counter_start = req.counter_start if req.counter_start is not None else config.default_counter_start

    inventory = Inventory(
        title=req.title,
        description=req.description or None,
        is_public=req.is_public,
        tags=req.tags,
        category_id=category_id,
        creator_id=uuid.UUID(user_id),
        custom_id_prefix=req.custom_id_prefix,
        custom_id_format=req.custom_id_format,
        counter_start=counter_start,
        last_counter=counter_start - 1,
        **clean_field_definitions(req.model_dump()),
    )
    session.add(inventory)
    await session.flush()
    await session.commit()

    logger.info("Inventory %s created by %s", inventory.inventory_id, user_id)
    return serialize_inventory(
        inventory,
        category_name=req.category if category_id else None,
        creator=await _creator(session, inventory),
        item_count=0,
        comment_count=0,
    )


@router.get("/{inventory_id}")
async def get_inventory(
    inventory_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Inventory with its active fields, items and comments."""
    inventory = await load_visible_inventory(session, inventory_id, user_id)

    items = await session.execute(
        select(Item, User.display_name, User.email)
        .outerjoin(User, User.user_id == Item.created_by_id)
        .where(Item.inventory_id == inventory.inventory_id)
        .order_by(Item.created_at.desc())
    )
    comments = await session.execute(
        select(Comment, User.display_name, User.email)
        .outerjoin(User, User.user_id == Comment.user_id)
        .where(Comment.inventory_id == inventory.inventory_id)
        .order_by(Comment.created_at.desc())
    )
    item_rows = items.all()
    comment_rows = comments.all()

    data = serialize_inventory(
        inventory,
        category_name=await _category_name(session, inventory.category_id),
        creator=await _creator(session, inventory),
        item_count=len(item_rows),
        comment_count=len(comment_rows),
    )
    data["items"] = serialize_items(item_rows, inventory)
    data["comments"] = [
        serialize_comment(c, author=person_from_row(name, email))
        for c, name, email in comment_rows
    ]
    return data


@router.put("/{inventory_id}")
async def update_inventory(
    inventory_id: str,
    req: InventoryUpdate,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    inventory = await load_owned_inventory(session, inventory_id, user_id)
    sent = req.model_dump(exclude_unset=True)

    inventory.title = req.title
    if "description" in sent:
        inventory.description = req.description
    if req.is_public is not None:
        inventory.is_public = req.is_public
    if "category" in sent:
        inventory.category_id = await get_or_create_category(session, req.category)
    if req.tags is not None:
        inventory.tags = req.tags
    if req.custom_id_prefix and req.custom_id_prefix.strip():
        inventory.custom_id_prefix = req.custom_id_prefix.strip()
    if req.custom_id_format and req.custom_id_format.strip():
        inventory.custom_id_format = req.custom_id_format.strip()
    for key, value in clean_field_definitions(sent, partial=True).items():
        setattr(inventory, key, value)

    await session.flush()
    await session.commit()
    logger.info("Inventory %s updated by %s", inventory.inventory_id, user_id)

    return serialize_inventory(
        inventory,
        category_name=await _category_name(session, inventory.category_id),
        creator=await _creator(session, inventory),
    )


@router.delete("/{inventory_id}")
async def delete_inventory(
    inventory_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    inventory = await load_owned_inventory(session, inventory_id, user_id)
    inv_id = inventory.inventory_id
    await session.execute(delete(Comment).where(Comment.inventory_id == inv_id))
    await session.execute(delete(Item).where(Item.inventory_id == inv_id))
    await session.execute(delete(Inventory).where(Inventory.inventory_id == inv_id))
    await session.commit()
    logger.info("Inventory %s deleted by %s", inventory_id, user_id)
    return {"success": True}
