"""
Pydantic request schemas for the inventory API and the integrations.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _required_text(value: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


# ═══════════════════════════════════════════════════════════════════════════════
# Inventories
# ═══════════════════════════════════════════════════════════════════════════════


class FieldSlots(BaseModel):
    """Names and active flags of the nine custom field slots."""

    string_field1_name: Optional[str] = None
    string_field1_active: bool = False
    string_field2_name: Optional[str] = None
    string_field2_active: bool = False
    string_field3_name: Optional[str] = None
    string_field3_active: bool = False

    number_field1_name: Optional[str] = None
    number_field1_active: bool = False
    number_field2_name: Optional[str] = None
    number_field2_active: bool = False
    number_field3_name: Optional[str] = None
    number_field3_active: bool = False

    bool_field1_name: Optional[str] = None
    bool_field1_active: bool = False
    bool_field2_name: Optional[str] = None
    bool_field2_active: bool = False
    bool_field3_name: Optional[str] = None
    bool_field3_active: bool = False


class InventoryCreate(FieldSlots):
    title: str
    description: Optional[str] = None
    is_public: bool = True
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    custom_id_prefix: str = Field(..., max_length=32)
    custom_id_format: str = Field(..., max_length=128)
    counter_start: Optional[int] = Field(None, ge=1)

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _required_text(v, "Title")

    @field_validator("custom_id_prefix")
    @classmethod
    def _prefix(cls, v: str) -> str:
        return _required_text(v, "Custom ID prefix")

    @field_validator("custom_id_format")
    @classmethod
    def _format(cls, v: str) -> str:
        v = _required_text(v, "Custom ID format")
        if "{counter}" not in v:
            raise ValueError("Custom ID format must contain {counter}")
        return v


class InventoryUpdate(BaseModel):
    """
    Partial update: only the fields present in the request body change.
    Read it with ``model_dump(exclude_unset=True)``.
    """

    title: str
    description: Optional[str] = None
    is_public: Optional[bool] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    custom_id_prefix: Optional[str] = Field(None, max_length=32)
    custom_id_format: Optional[str] = Field(None, max_length=128)

    string_field1_name: Optional[str] = None
    string_field1_active: Optional[bool] = None
    string_field2_name: Optional[str] = None
    string_field2_active: Optional[bool] = None
    string_field3_name: Optional[str] = None
    string_field3_active: Optional[bool] = None

    number_field1_name: Optional[str] = None
    number_field1_active: Optional[bool] = None
    number_field2_name: Optional[str] = None
    number_field2_active: Optional[bool] = None
    number_field3_name: Optional[str] = None
    number_field3_active: Optional[bool] = None

    bool_field1_name: Optional[str] = None
    bool_field1_active: Optional[bool] = None
    bool_field2_name: Optional[str] = None
    bool_field2_active: Optional[bool] = None
    bool_field3_name: Optional[str] = None
    bool_field3_active: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        return _required_text(v, "Title")

    @field_validator("custom_id_format")
    @classmethod
    def _format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and "{counter}" not in v:
            raise ValueError("Custom ID format must contain {counter}")
        return v


# ═══════════════════════════════════════════════════════════════════════════════
# Items / comments
# ═══════════════════════════════════════════════════════════════════════════════


class ItemValues(BaseModel):
    string_value1: Optional[str] = None
    string_value2: Optional[str] = None
    string_value3: Optional[str] = None
    number_value1: Optional[float] = None
    number_value2: Optional[float] = None
    number_value3: Optional[float] = None
    bool_value1: Optional[bool] = None
    bool_value2: Optional[bool] = None
    bool_value3: Optional[bool] = None


class ItemWrite(ItemValues):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _required_text(v, "Item name")


class CommentCreate(BaseModel):
    text: str = Field(..., max_length=5000)

    @field_validator("text")
    @classmethod
    def _text(cls, v: str) -> str:
        return _required_text(v, "Comment text")


# ═══════════════════════════════════════════════════════════════════════════════
# Integrations
# ═══════════════════════════════════════════════════════════════════════════════


class SalesforceAccountRequest(BaseModel):
    """Company + primary contact; accepts camelCase keys from the web form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company_name: str
    industry: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    first_name: str
    last_name: str
    contact_email: str
    contact_phone: Optional[str] = None
    title: Optional[str] = None
    department: Optional[str] = None

    @field_validator("company_name", "first_name", "last_name", "contact_email")
    @classmethod
    def _required(cls, v: str) -> str:
        return _required_text(
            v, "Company Name, First Name, Last Name and Contact Email"
        )

    def account_record(self) -> dict:
        return {
            "Name": self.company_name,
            "Industry": self.industry,
            "Phone": self.phone,
            "Website": self.website,
        }

    def contact_record(self, account_id: str) -> dict:
        return {
            "FirstName": self.first_name,
            "LastName": self.last_name,
            "Email": self.contact_email,
            "Phone": self.contact_phone,
            "AccountId": account_id,
            "Title": self.title,
            "Department": self.department,
        }
