"""Domain models for boxes, items and groups."""

from dataclasses import dataclass
from datetime import datetime

DEFAULT_COLOR_CODE = "\U0001f4e6"


@dataclass(frozen=True)
class Box:
    """A packed container with descriptive metadata."""

    id: str
    user_id: str
    box_number: int
    group: str
    category: str
    summary: str
    color_code: str
    created_at: datetime
    location: str | None = None
    notes: str | None = None
    photo: str | None = None


@dataclass(frozen=True)
class Item:
    """A unit of inventory inside exactly one box."""

    id: str
    box_id: str
    user_id: str
    name: str
    created_at: datetime
    notes: str | None = None
    category: str | None = None
    photo: str | None = None


@dataclass(frozen=True)
class Group:
    """A packing group (wave) boxes are assigned to."""

    id: str
    user_id: str
    name: str
    created_at: datetime


@dataclass(frozen=True)
class ItemSearchResult:
    """An item matching a search together with its box."""

    item: Item
    box: Box
