"""
Discussion comments on an inventory.

Route prefix: /api/v1/inventories
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.serializers import person_from_row, serialize_comment
from auth.dependencies import db_session, get_current_user_id, get_optional_user_id
from database.models import Comment, User
from inventory.permissions import load_comment, load_visible_inventory
from utils.errors import PermissionDenied
from utils.schemas import CommentCreate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["comments"])


@router.get("/{inventory_id}/comments")
async def list_comments(
    inventory_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> List[Dict[str, Any]]:
    inventory = await load_visible_inventory(session, inventory_id, user_id)
    result = await session.execute(
        select(Comment, User.display_name, User.email)
        .outerjoin(User, User.user_id == Comment.user_id)
        .where(Comment.inventory_id == inventory.inventory_id)
        .order_by(Comment.created_at.desc())
    )
    return [
        serialize_comment(comment, author=person_from_row(name, email))
        for comment, name, email in result.all()
    ]


@router.post("/{inventory_id}/comments")
async def create_comment(
    inventory_id: str,
    req: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Any signed-in user who can see the inventory may comment on it."""
    inventory = await load_visible_inventory(session, inventory_id, user_id)

    comment = Comment(
        inventory_id=inventory.inventory_id,
        user_id=uuid.UUID(user_id),
        text=req.text,
    )
    session.add(comment)
    await session.flush()
    await session.commit()

    result = await session.execute(
        select(User.display_name, User.email).where(User.user_id == comment.user_id)
    )
    row = result.one_or_none()
    logger.info("Comment %s added to inventory %s", comment.comment_id, inventory_id)
    return serialize_comment(comment, author=person_from_row(*row) if row else None)


@router.delete("/{inventory_id}/comments/{comment_id}")
async def delete_comment(
    inventory_id: str,
    comment_id: str,
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    inventory = await load_visible_inventory(session, inventory_id, user_id)
    comment = await load_comment(session, inventory, comment_id)
    if str(comment.user_id) != user_id:
        raise PermissionDenied("Only the author can delete this comment")

    await session.execute(delete(Comment).where(Comment.comment_id == comment.comment_id))
    await session.commit()
    logger.info("Comment %s deleted by %s", comment_id, user_id)
    return {"success": True}
