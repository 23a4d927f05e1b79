"""Models for photo analysis results."""

from dataclasses import dataclass

from pydantic import BaseModel, Field


class AnalysisItem(BaseModel):
    """Single item described by the vision model."""

    name: str = Field(min_length=1)
    description: str = ""
    category: str = ""


class AnalysisExtract(BaseModel):
    """Structured output expected from the vision model."""

    items: list[AnalysisItem] = Field(min_length=1)


@dataclass(frozen=True)
class AnalyzedItem:
    """An analyzed item bound to the photo it came from."""

    name: str
    description: str
    category: str
    photo: str
