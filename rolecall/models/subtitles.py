"""Subtitle cues and the character lines found in them."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, RootModel


class SubtitleEntry(BaseModel):
    """One SRT cue. Times are seconds from the start of the movie."""
    start: float
    end: float
    text: str


class ActorLine(BaseModel):
    """A cue that mentions a character, attributed to the actor playing it."""
    start: float
    end: float
    character: str
    actor: Optional[str] = None
    line: str


class WyzieSubtitle(BaseModel):
    """One entry of the subtitle search listing."""
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    url: str
    language: str = ""
    format: str = ""
    display: Optional[str] = None
    media: Optional[str] = None


class WyzieListing(RootModel[list[WyzieSubtitle]]):
    """GET /search?id={tmdb_id}"""
