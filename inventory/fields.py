"""
Custom field slots — three text, three number and three boolean slots per
inventory, each with a name and an active flag.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

# (type, attribute stem, item value stem, default label)
_SLOT_KINDS: Tuple[Tuple[str, str, str, str], ...] = (
    ("string", "string_field", "string_value", "String Field"),
    ("number", "number_field", "number_value", "Number Field"),
    ("boolean", "bool_field", "bool_value", "Boolean Field"),
)

SLOTS_PER_KIND = 3

FIELD_DEFINITION_KEYS: List[str] = [
    f"{stem}{i}_{suffix}"
    for _, stem, _, _ in _SLOT_KINDS
    for i in range(1, SLOTS_PER_KIND + 1)
    for suffix in ("name", "active")
]

ITEM_VALUE_KEYS: List[str] = [
    f"{value_stem}{i}"
    for _, _, value_stem, _ in _SLOT_KINDS
    for i in range(1, SLOTS_PER_KIND + 1)
]


def _iter_slots():
    order = 0
    for kind, stem, value_stem, label in _SLOT_KINDS:
        for i in range(1, SLOTS_PER_KIND + 1):
            order += 1
            yield kind, f"{stem}{i}", f"{value_stem}{i}", f"{label} {i}", order


def get_active_custom_fields(inventory: Any) -> List[Dict[str, Any]]:
    """
    Active slots of ``inventory`` in display order.

    Each entry has ``key`` (the item value attribute), ``name``, ``type``
    and ``order``.  Inactive slots are never returned.
    """
    fields = []
    for kind, field, value_key, default_label, order in _iter_slots():
        if not getattr(inventory, f"{field}_active", False):
            continue
        fields.append(
            {
                "key": value_key,
                "name": getattr(inventory, f"{field}_name", None) or default_label,
                "type": kind,
                "order": order,
            }
        )
    return fields


def mask_inactive_values(inventory: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map submitted item values onto the inventory's slots.

    Inactive slots are always ``None``; active boolean slots default to
    ``False`` when not supplied.
    """
    masked: Dict[str, Any] = {}
    for kind, field, value_key, _, _ in _iter_slots():
        if not getattr(inventory, f"{field}_active", False):
            masked[value_key] = None
            continue
        value = values.get(value_key)
        if kind == "boolean":
            masked[value_key] = bool(value) if value is not None else False
        else:
            masked[value_key] = value
    return masked


def clean_field_definitions(
    data: Mapping[str, Any], partial: bool = False
) -> Dict[str, Any]:
    """
    Normalise submitted slot definitions: blank names become ``None``.

    With ``partial`` only keys present in ``data`` are returned, and an
    explicit ``None`` active flag leaves the slot unchanged.
    """
    cleaned: Dict[str, Any] = {}
    for key in FIELD_DEFINITION_KEYS:
        if partial and key not in data:
            continue
        value = data.get(key)
        if key.endswith("_active"):
            if partial and value is None:
                continue
            cleaned[key] = bool(value)
        else:
            cleaned[key] = value.strip() if isinstance(value, str) and value.strip() else None
    return cleaned
