"""Supabase implementation for boxes, items and groups."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from box_tracker.domain.inventory import DEFAULT_COLOR_CODE, Box, Group, Item
from box_tracker.services.inventory import InventoryRepository

_BOX_COLUMNS = (
    "id, user_id, box_number, group_name, category, summary, color_code, "
    "location, notes, photo, created_at"
)
_ITEM_COLUMNS = "id, box_id, user_id, name, notes, category, photo, created_at"


@dataclass
class SupabaseInventoryRepository(InventoryRepository):
    """Supabase-backed repository for the moving inventory."""

    client: Client

    def create_box(self, user_id: str, payload: dict[str, object]) -> Box:
        """Create a box row and return it."""
        response = (
            self.client.table("boxes")
            .insert({"user_id": user_id, **_box_row(payload)})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create box")
        return _parse_box(response.data[0])

    def get_box(self, box_id: str) -> Box | None:
        """Return a box by id, if present."""
        response = (
            self.client.table("boxes")
            .select(_BOX_COLUMNS)
            .eq("id", box_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_box(response.data[0])

    def list_boxes(self, user_id: str, group: str | None = None) -> list[Box]:
        """Return a user's boxes, newest first."""
        query = self.client.table("boxes").select(_BOX_COLUMNS).eq("user_id", user_id)
        if group is not None:
            query = query.eq("group_name", group)
        response = query.order("created_at", desc=True).execute()
        return [_parse_box(row) for row in response.data or []]

    def update_box(self, box_id: str, updates: dict[str, object]) -> None:
        """Update box columns."""
        self.client.table("boxes").update(_box_row(updates)).eq("id", box_id).execute()

    def delete_box(self, box_id: str) -> None:
        """Delete a box and its items."""
        self.client.table("items").delete().eq("box_id", box_id).execute()
        self.client.table("boxes").delete().eq("id", box_id).execute()

    def create_item(
        self, box_id: str, user_id: str, payload: dict[str, object]
    ) -> Item:
        """Create an item row and return it."""
        response = (
            self.client.table("items")
            .insert({"box_id": box_id, "user_id": user_id, **_item_row(payload)})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create item")
        return _parse_item(response.data[0])

    def get_item(self, box_id: str, item_id: str) -> Item | None:
        """Return an item by id within a box."""
        response = (
            self.client.table("items")
            .select(_ITEM_COLUMNS)
            .eq("id", item_id)
            .eq("box_id", box_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_item(response.data[0])

    def list_items(self, box_id: str) -> list[Item]:
        """Return a box's items, newest first."""
        response = (
            self.client.table("items")
            .select(_ITEM_COLUMNS)
            .eq("box_id", box_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_item(row) for row in response.data or []]

    def update_item(
        self, box_id: str, item_id: str, updates: dict[str, object]
    ) -> None:
        """Update item columns."""
        self.client.table("items").update(_item_row(updates)).eq("id", item_id).eq(
            "box_id", box_id
        ).execute()

    def delete_item(self, box_id: str, item_id: str) -> None:
        """Delete an item row."""
        self.client.table("items").delete().eq("id", item_id).eq(
            "box_id", box_id
        ).execute()

    def create_group(self, user_id: str, name: str) -> Group:
        """Create a group row and return it."""
        response = (
            self.client.table("groups")
            .insert({"user_id": user_id, "name": name})
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create group")
        return _parse_group(response.data[0])

    def list_groups(self, user_id: str) -> list[Group]:
        """Return a user's groups ordered by name."""
        response = (
            self.client.table("groups")
            .select("id, user_id, name, created_at")
            .eq("user_id", user_id)
            .order("name", desc=False)
            .execute()
        )
        return [_parse_group(row) for row in response.data or []]


def _box_row(payload: dict[str, object]) -> dict[str, object]:
    row = dict(payload)
    if "group" in row:
        row["group_name"] = row.pop("group")
    return row


def _item_row(payload: dict[str, object]) -> dict[str, object]:
    allowed = {"name", "notes", "category", "photo"}
    return {key: value for key, value in payload.items() if key in allowed}


def _parse_box(row: dict[str, object]) -> Box:
    return Box(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        box_number=int(row.get("box_number") or 0),
        group=str(row.get("group_name") or ""),
        category=str(row.get("category") or ""),
        summary=str(row.get("summary") or ""),
        color_code=str(row.get("color_code") or DEFAULT_COLOR_CODE),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        location=row.get("location"),
        notes=row.get("notes"),
        photo=row.get("photo"),
    )


def _parse_item(row: dict[str, object]) -> Item:
    return Item(
        id=str(row["id"]),
        box_id=str(row["box_id"]),
        user_id=str(row["user_id"]),
        name=str(row.get("name") or ""),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        notes=row.get("notes"),
        category=row.get("category"),
        photo=row.get("photo"),
    )


def _parse_group(row: dict[str, object]) -> Group:
    return Group(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        name=str(row.get("name") or ""),
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
