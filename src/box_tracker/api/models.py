"""Request bodies accepted by the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field

from box_tracker.domain.inventory import DEFAULT_COLOR_CODE


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AnalyzePhotoRequest(_CamelModel):
    """Photo submitted for one-off analysis."""

    image_base64: str | None = Field(default=None, alias="imageBase64")
    box_context: str | None = Field(default=None, alias="boxContext")


class CredentialsRequest(_CamelModel):
    """Email and password for sign-in and sign-up."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PhotoUploadRequest(_CamelModel):
    """Photo uploaded into a box's capture queue."""

    image_base64: str = Field(alias="imageBase64", min_length=1)


class BoxCreateRequest(_CamelModel):
    """Fields for a new box."""

    box_number: int | None = Field(default=None, alias="boxNumber", ge=1)
    group: str = ""
    category: str = ""
    summary: str = ""
    color_code: str = Field(default=DEFAULT_COLOR_CODE, alias="colorCode")
    location: str | None = None
    notes: str | None = None
    photo: str | None = None


class BoxUpdateRequest(_CamelModel):
    """Partial box update."""

    box_number: int | None = Field(default=None, alias="boxNumber", ge=1)
    group: str | None = None
    category: str | None = None
    summary: str | None = None
    color_code: str | None = Field(default=None, alias="colorCode")
    location: str | None = None
    notes: str | None = None
    photo: str | None = None


class ItemCreateRequest(_CamelModel):
    """Fields for a manually added item."""

    name: str = Field(min_length=1)
    notes: str | None = None
    category: str | None = None
    photo: str | None = None


class ItemUpdateRequest(_CamelModel):
    """Partial item update."""

    name: str | None = Field(default=None, min_length=1)
    notes: str | None = None
    category: str | None = None
    photo: str | None = None


class MoveItemRequest(_CamelModel):
    """Target box for an item move."""

    target_box_id: str = Field(alias="targetBoxId", min_length=1)


class GroupCreateRequest(_CamelModel):
    """Name of a new packing group."""

    name: str = Field(min_length=1)
