"""
Custom item identifiers.

An item's ``custom_id`` is rendered from the inventory's template, e.g.
``"{prefix}-{counter}"`` with prefix ``ITEM`` and counter 7 → ``ITEM-007``.
Counters are claimed atomically per inventory (see ``claim_next_counter``).
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from config.settings import config
from database.models import Inventory, Item

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "{prefix}-{counter}"

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def generate_custom_id(
    prefix: str,
    counter: int,
    fmt: str = DEFAULT_FORMAT,
    *,
    min_digits: int | None = None,
) -> str:
    """Substitute the first ``{prefix}`` and zero-padded ``{counter}`` into ``fmt``."""
    width = min_digits if min_digits is not None else config.custom_id_min_digits
    padded = str(counter).zfill(width)
    return fmt.replace("{prefix}", prefix, 1).replace("{counter}", padded, 1)


def next_counter_from_last(last_custom_id: Optional[str], counter_start: int = 1) -> int:
    """
    Counter following ``last_custom_id``.

    Uses the trailing run of digits; falls back to ``counter_start`` when
    there is no previous ID or it does not end in digits.
    """
    if not last_custom_id:
        return counter_start
    match = _TRAILING_DIGITS.search(last_custom_id)
    if match is None:
        return counter_start
    return int(match.group(1)) + 1


async def _seed_counter(session: AsyncSession, inventory_id: uuid.UUID, counter_start: int) -> None:
    """Initialise ``last_counter`` for rows that predate the column."""
    result = await session.execute(
        select(Item.custom_id)
        .where(Item.inventory_id == inventory_id)
        .order_by(Item.created_at.desc())
        .limit(1)
    )
    last_custom_id = result.scalar_one_or_none()
    seed = next_counter_from_last(last_custom_id, counter_start) - 1
    await session.execute(
        update(Inventory)
        .where(Inventory.inventory_id == inventory_id, Inventory.last_counter.is_(None))
        .values(last_counter=seed)
        .execution_options(synchronize_session=False)
    )
    logger.info("Seeded counter for inventory %s at %d", inventory_id, seed)


async def claim_next_counter(session: AsyncSession, inventory: Inventory) -> int:
    """
    Atomically reserve the next counter value for ``inventory``.

    A single ``UPDATE … RETURNING`` means two concurrent requests can never
    receive the same value.
    """
    if inventory.last_counter is None:
        await _seed_counter(session, inventory.inventory_id, inventory.counter_start or 1)

    result = await session.execute(
        update(Inventory)
        .where(Inventory.inventory_id == inventory.inventory_id)
        .values(last_counter=Inventory.last_counter + 1)
        .returning(Inventory.last_counter)
        .execution_options(synchronize_session=False)
    )
    counter = result.scalar_one()
    set_committed_value(inventory, "last_counter", counter)
    return counter


async def assign_custom_id(session: AsyncSession, inventory: Inventory) -> str:
    """Claim a counter and render the inventory's template with it."""
    counter = await claim_next_counter(session, inventory)
    return generate_custom_id(
        inventory.custom_id_prefix,
        counter,
        inventory.custom_id_format or DEFAULT_FORMAT,
    )
