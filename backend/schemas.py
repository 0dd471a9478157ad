# schemas.py
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from models import STATE_NAME_MAX_LENGTH

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Largest row offset sent to the store
MAX_OFFSET = 2**31 - 1
DEFAULT_SORT_FIELD = "stateName"

# API sort field -> State attribute
SORTABLE_FIELDS = {
    "id": "id",
    "stateName": "state_name",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
# Legacy names still sent by older frontends
SORT_ALIASES = {"name": "stateName"}


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ================================
# Request payloads
# ================================
class StateCreate(CamelModel):
    state_name: str = Field(..., min_length=1, max_length=STATE_NAME_MAX_LENGTH)


class StateUpdate(CamelModel):
    """Partial update. Only fields present in the payload are written."""

    state_name: Optional[str] = Field(None, min_length=1, max_length=STATE_NAME_MAX_LENGTH)

    @field_validator("state_name")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("stateName cannot be null")
        return value

    @model_validator(mode="after")
    def _at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field is required")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# ================================
# Responses
# ================================
class StateOut(CamelModel):
    id: int
    state_name: str
    created_at: datetime
    updated_at: datetime


class StateList(CamelModel):
    states: List[StateOut]
    page: int
    total_pages: int
    total_states: int


class MessageOut(BaseModel):
    message: str


# ================================
# List query coercion
# ================================
def coerce_positive_int(raw: Optional[str], default: int, maximum: Optional[int] = None) -> int:
    """Parse a query value, falling back to ``default`` when malformed or < 1.

    Values above ``maximum`` are clamped to it.
    """
    text = str(raw).strip() if raw is not None else ""
    digits = text.lstrip("0")
    if maximum is not None and digits.isascii() and digits.isdigit() and len(digits) > len(str(maximum)):
        return maximum
    try:
        value = int(text)
    except ValueError:
        return default
    if value < 1:
        return default
    if maximum is not None and value > maximum:
        return maximum
    return value


def max_page(limit: int) -> int:
    """Last page whose offset still fits in ``MAX_OFFSET``."""
    return MAX_OFFSET // limit + 1


def resolve_sort(sort_by: Optional[str], sort_order: Optional[str]):
    """Return (State attribute name, descending) for the list query."""
    field = SORT_ALIASES.get(sort_by, sort_by)
    if field not in SORTABLE_FIELDS:
        field = DEFAULT_SORT_FIELD
    descending = (sort_order or "").strip().lower() == "desc"
    return SORTABLE_FIELDS[field], descending


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)
