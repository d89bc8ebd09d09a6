"""
Profile statistics for the signed-in user.

Route prefix: /api/v1/profile
"""

from __future__ import annotations

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user_id
from database.models import Comment, Inventory, Item

router = APIRouter(tags=["profile"])


@router.get("/stats")
async def profile_stats(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    uid = uuid.UUID(user_id)

    def _count(column, *criteria):
        return select(func.count(column)).where(*criteria).scalar_subquery()

    owned = Inventory.creator_id == uid
    result = await session.execute(
        select(
            _count(Inventory.inventory_id, owned).label("total"),
            _count(Inventory.inventory_id, owned, Inventory.is_public.is_(True)).label("public"),
            _count(Inventory.inventory_id, owned, Inventory.is_public.is_(False)).label("private"),
            _count(
                Item.item_id,
                Item.inventory_id.in_(select(Inventory.inventory_id).where(owned)),
            ).label("items"),
            _count(Comment.comment_id, Comment.user_id == uid).label("comments"),
        )
    )
    total, public, private, items, comments = result.one()
    return {
        "total_inventories": total,
        "public_inventories": public,
        "private_inventories": private,
        "total_items": items,
        "total_comments": comments,
    }
