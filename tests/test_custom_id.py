"""
Tests for custom item ID rendering and the per-inventory counter.
"""

import uuid

import pytest
from sqlalchemy import select

from database.models import Inventory, Item
from inventory.custom_id import (
    assign_custom_id,
    claim_next_counter,
    generate_custom_id,
    next_counter_from_last,
)


class TestGenerateCustomId:
    def test_default_padding(self):
        assert generate_custom_id("ITEM", 7) == "ITEM-007"

    def test_wide_counter_is_not_truncated(self):
        assert generate_custom_id("ITEM", 1234) == "ITEM-1234"

    def test_custom_format(self):
        assert generate_custom_id("BK", 12, "{prefix}/{counter}/A") == "BK/012/A"

    def test_format_without_prefix_placeholder(self):
        assert generate_custom_id("BK", 5, "N{counter}") == "N005"

    def test_explicit_min_digits(self):
        assert generate_custom_id("X", 3, min_digits=5) == "X-00003"

    def test_only_first_placeholder_substituted(self):
        assert generate_custom_id("BK", 7, "{counter}-{counter}") == "007-{counter}"
        assert generate_custom_id("BK", 7, "{prefix}{prefix}-{counter}") == "BK{prefix}-007"


class TestNextCounterFromLast:
    def test_no_previous_id(self):
        assert next_counter_from_last(None) == 1
        assert next_counter_from_last("", counter_start=10) == 10

    def test_trailing_digits(self):
        assert next_counter_from_last("ITEM-042") == 43

    def test_no_trailing_digits_falls_back_to_start(self):
        assert next_counter_from_last("ITEM-abc", counter_start=5) == 5

    def test_only_trailing_run_counts(self):
        assert next_counter_from_last("2023-BOX-009") == 10


async def _inventory(db, **overrides) -> Inventory:
    fields = dict(
        title="Books",
        creator_id=uuid.uuid4(),
        custom_id_prefix="BK",
        custom_id_format="{prefix}-{counter}",
        counter_start=1,
        last_counter=0,
    )
    fields.update(overrides)
    inventory = Inventory(**fields)
    db.add(inventory)
    await db.commit()
    return inventory


class TestCounter:
    @pytest.mark.asyncio
    async def test_sequential_claims(self, db):
        inventory = await _inventory(db)
        assert await claim_next_counter(db, inventory) == 1
        assert await claim_next_counter(db, inventory) == 2
        assert inventory.last_counter == 2

    @pytest.mark.asyncio
    async def test_counter_start_respected(self, db):
        inventory = await _inventory(db, counter_start=100, last_counter=99)
        assert await assign_custom_id(db, inventory) == "BK-100"

    @pytest.mark.asyncio
    async def test_legacy_inventory_seeded_from_newest_item(self, db):
        inventory = await _inventory(db, last_counter=None)
        db.add(
            Item(
                inventory_id=inventory.inventory_id,
                custom_id="BK-042",
                name="Old book",
            )
        )
        await db.commit()

        assert await assign_custom_id(db, inventory) == "BK-043"
        await db.commit()

        result = await db.execute(
            select(Inventory.last_counter).where(Inventory.inventory_id == inventory.inventory_id)
        )
        assert result.scalar_one() == 43

    @pytest.mark.asyncio
    async def test_legacy_inventory_without_items_uses_counter_start(self, db):
        inventory = await _inventory(db, last_counter=None, counter_start=5)
        assert await assign_custom_id(db, inventory) == "BK-005"
