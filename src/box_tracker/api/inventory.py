"""Box, item and group endpoints.

Routes are plain functions because the store client blocks; FastAPI runs
them in its threadpool.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request, Response, status

from box_tracker.api.dependencies import get_container, owned_box, require_user
from box_tracker.api.models import (  # noqa: TC001
    BoxCreateRequest,
    BoxUpdateRequest,
    GroupCreateRequest,
    ItemCreateRequest,
    ItemUpdateRequest,
    MoveItemRequest,
)

if TYPE_CHECKING:
    from box_tracker.domain.inventory import Box, Group, Item

router = APIRouter(prefix="/api", tags=["inventory"])


@router.get("/boxes")
def list_boxes(
    request: Request, group: str | None = None, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Return the user's boxes, optionally filtered by group."""
    container = get_container(request)
    boxes = container.inventory_service.list_boxes(user_id, group)
    return {"boxes": [serialize_box(box) for box in boxes]}


@router.post("/boxes", status_code=status.HTTP_201_CREATED)
def create_box(
    body: BoxCreateRequest, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Create a box, numbering it automatically when no number is given."""
    container = get_container(request)
    payload = body.model_dump(exclude={"box_number"})
    payload["box_number"] = body.box_number or (
        container.inventory_service.next_box_number(user_id)
    )
    box = container.inventory_service.create_box(user_id, payload)
    return serialize_box(box)


@router.get("/boxes/next-number")
def next_box_number(
    request: Request, user_id: str = Depends(require_user)
) -> dict[str, int]:
    """Return the next free box number."""
    container = get_container(request)
    return {"boxNumber": container.inventory_service.next_box_number(user_id)}


@router.get("/boxes/search")
def search_boxes(
    q: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Search boxes by summary, category and notes."""
    container = get_container(request)
    boxes = container.inventory_service.search_boxes(user_id, q)
    return {"boxes": [serialize_box(box) for box in boxes]}


@router.get("/boxes/{box_id}")
def get_box(
    box_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Return a box with its items and deep link."""
    container = get_container(request)
    box = owned_box(container, box_id, user_id)
    items = container.inventory_service.list_items(box_id)
    return {
        **serialize_box(box),
        "url": container.inventory_service.box_url(box_id),
        "items": [serialize_item(item) for item in items],
    }


@router.patch("/boxes/{box_id}")
def update_box(
    box_id: str,
    body: BoxUpdateRequest,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Update box metadata."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    box = container.inventory_service.update_box(
        box_id, body.model_dump(exclude_unset=True)
    )
    return serialize_box(box)


@router.delete("/boxes/{box_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_box(
    box_id: str, request: Request, user_id: str = Depends(require_user)
) -> Response:
    """Delete a box."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    container.inventory_service.delete_box(box_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/boxes/{box_id}/link")
def box_link(
    box_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, str]:
    """Return the QR deep link for a box."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    return {"url": container.inventory_service.box_url(box_id)}


@router.get("/boxes/{box_id}/items")
def list_items(
    box_id: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Return a box's items."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    items = container.inventory_service.list_items(box_id)
    return {"items": [serialize_item(item) for item in items]}


@router.post("/boxes/{box_id}/items", status_code=status.HTTP_201_CREATED)
def create_item(
    box_id: str,
    body: ItemCreateRequest,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Add an item to a box by hand."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    item = container.inventory_service.create_item(box_id, user_id, body.model_dump())
    return serialize_item(item)


@router.patch("/boxes/{box_id}/items/{item_id}")
def update_item(
    box_id: str,
    item_id: str,
    body: ItemUpdateRequest,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Update an item."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    item = container.inventory_service.update_item(
        box_id, item_id, body.model_dump(exclude_unset=True)
    )
    return serialize_item(item)


@router.delete(
    "/boxes/{box_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT
)
def delete_item(
    box_id: str, item_id: str, request: Request, user_id: str = Depends(require_user)
) -> Response:
    """Remove an item from a box."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    container.inventory_service.delete_item(box_id, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/boxes/{box_id}/items/{item_id}/move")
def move_item(
    box_id: str,
    item_id: str,
    body: MoveItemRequest,
    request: Request,
    user_id: str = Depends(require_user),
) -> dict[str, object]:
    """Move an item into another of the user's boxes."""
    container = get_container(request)
    owned_box(container, box_id, user_id)
    owned_box(container, body.target_box_id, user_id)
    item = container.inventory_service.move_item(box_id, body.target_box_id, item_id)
    return serialize_item(item)


@router.get("/items/search")
def search_items(
    q: str, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Search items by name and notes across all boxes."""
    container = get_container(request)
    results = container.inventory_service.search_items(user_id, q)
    return {
        "results": [
            {"item": serialize_item(result.item), "box": serialize_box(result.box)}
            for result in results
        ]
    }


@router.get("/groups")
def list_groups(
    request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Return the user's packing groups."""
    container = get_container(request)
    groups = container.inventory_service.list_groups(user_id)
    return {"groups": [serialize_group(group) for group in groups]}


@router.post("/groups", status_code=status.HTTP_201_CREATED)
def create_group(
    body: GroupCreateRequest, request: Request, user_id: str = Depends(require_user)
) -> dict[str, object]:
    """Create a packing group."""
    container = get_container(request)
    group = container.inventory_service.create_group(user_id, body.name.strip())
    return serialize_group(group)


def serialize_box(box: Box) -> dict[str, object]:
    return {
        "id": box.id,
        "boxNumber": box.box_number,
        "group": box.group,
        "category": box.category,
        "summary": box.summary,
        "colorCode": box.color_code,
        "location": box.location,
        "notes": box.notes,
        "photo": box.photo,
        "createdAt": box.created_at.isoformat(),
    }


def serialize_item(item: Item) -> dict[str, object]:
    return {
        "id": item.id,
        "boxId": item.box_id,
        "name": item.name,
        "notes": item.notes,
        "category": item.category,
        "photo": item.photo,
        "createdAt": item.created_at.isoformat(),
    }


def serialize_group(group: Group) -> dict[str, object]:
    return {
        "id": group.id,
        "name": group.name,
        "createdAt": group.created_at.isoformat(),
    }
