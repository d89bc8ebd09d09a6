"""
ORM row → JSON dict conversion.

Only active custom field slots are ever surfaced, both in inventory
definitions and in item values.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from database.models import Comment, Inventory, Item
from inventory.fields import get_active_custom_fields


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def person_from_row(display_name: Optional[str], email: Optional[str]) -> Optional[Dict[str, Any]]:
    if display_name is None and email is None:
        return None
    return {"name": display_name, "email": email}


def serialize_inventory(
    inventory: Inventory,
    *,
    category_name: Optional[str] = None,
    creator: Optional[Dict[str, Any]] = None,
    item_count: Optional[int] = None,
    comment_count: Optional[int] = None,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": str(inventory.inventory_id),
        "title": inventory.title,
        "description": inventory.description,
        "is_public": inventory.is_public,
        "tags": list(inventory.tags or []),
        "category": category_name or "Uncategorized",
        "creator_id": str(inventory.creator_id),
        "created_by": creator,
        "custom_id_prefix": inventory.custom_id_prefix,
        "custom_id_format": inventory.custom_id_format,
        "counter_start": inventory.counter_start,
        "fields": get_active_custom_fields(inventory),
        "created_at": _iso(inventory.created_at),
        "updated_at": _iso(inventory.updated_at),
    }
    if item_count is not None or comment_count is not None:
        data["counts"] = {"items": item_count or 0, "comments": comment_count or 0}
    return data


def serialize_item(
    item: Item,
    inventory: Inventory,
    *,
    created_by: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    values = {f["key"]: getattr(item, f["key"]) for f in get_active_custom_fields(inventory)}
    return {
        "id": str(item.item_id),
        "inventory_id": str(item.inventory_id),
        "custom_id": item.custom_id,
        "name": item.name,
        "description": item.description,
        "values": values,
        "created_by_id": str(item.created_by_id) if item.created_by_id else None,
        "created_by": created_by,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def serialize_comment(comment: Comment, *, author: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "id": str(comment.comment_id),
        "inventory_id": str(comment.inventory_id),
        "user_id": str(comment.user_id),
        "user": author,
        "text": comment.text,
        "created_at": _iso(comment.created_at),
    }


def serialize_items(rows: Iterable[Any], inventory: Inventory) -> List[Dict[str, Any]]:
    """``rows`` are ``(Item, display_name, email)`` tuples."""
    return [
        serialize_item(item, inventory, created_by=person_from_row(name, email))
        for item, name, email in rows
    ]
