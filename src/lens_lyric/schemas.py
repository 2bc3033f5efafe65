"""Pydantic schemas shared by the caption client and the session."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MediaKind(str, Enum):
    image = "image"
    video = "video"


class AppState(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class CaptionResult(BaseModel):
    """Structured output of one successful captioning call."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, frozen=True)

    reasoning: str = Field(..., min_length=1, description="How the visual elements connect to abstract concepts")
    english_caption: str = Field(..., min_length=1, alias="englishCaption")
    chinese_caption: str = Field(..., min_length=1, alias="chineseCaption")

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
