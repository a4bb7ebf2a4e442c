"""Pydantic models for the IMDb-compatible REST API (rest.imdbapi.dev)."""

from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RestImage(_Wire):
    url: str
    width: int = 0
    height: int = 0


class RestRating(_Wire):
    aggregate_rating: float = Field(default=0.0, validation_alias=_alias("aggregate_rating", "aggregateRating"))
    votes_count: int = Field(default=0, validation_alias=_alias("votes_count", "votesCount", "numVotes"))


class RestDate(_Wire):
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None


class RestPersonInfo(_Wire):
    """GET /names/{id}"""
    id: str
    display_name: str = Field(validation_alias=_alias("display_name", "displayName"))
    primary_image: Optional[RestImage] = Field(default=None, validation_alias=_alias("primary_image", "primaryImage"))
    biography: Optional[str] = None
    birth_date: Optional[RestDate] = Field(default=None, validation_alias=_alias("birth_date", "birthDate"))
    birth_location: Optional[str] = Field(default=None, validation_alias=_alias("birth_location", "birthLocation"))
    death_date: Optional[RestDate] = Field(default=None, validation_alias=_alias("death_date", "deathDate"))
    death_location: Optional[str] = Field(default=None, validation_alias=_alias("death_location", "deathLocation"))
    death_reason: Optional[str] = Field(default=None, validation_alias=_alias("death_reason", "deathReason"))
    primary_professions: list[str] = Field(
        default_factory=list, validation_alias=_alias("primary_professions", "primaryProfessions")
    )


class RestName(_Wire):
    id: str
    display_name: str = Field(validation_alias=_alias("display_name", "displayName"))
    primary_image: Optional[RestImage] = Field(default=None, validation_alias=_alias("primary_image", "primaryImage"))


class RestCredit(_Wire):
    name: RestName
    category: str = ""
    characters: list[str] = Field(default_factory=list)


class RestCreditsResponse(_Wire):
    """GET /titles/{id}/credits"""
    credits: list[RestCredit] = Field(default_factory=list)


class RestTitle(_Wire):
    """GET /titles/{id}, and the title part of search/known-for entries."""
    id: str
    primary_title: Optional[str] = Field(default=None, validation_alias=_alias("primary_title", "primaryTitle"))
    original_title: Optional[str] = Field(default=None, validation_alias=_alias("original_title", "originalTitle"))
    start_year: Optional[int] = Field(default=None, validation_alias=_alias("start_year", "startYear"))
    runtime_minutes: Optional[int] = Field(default=None, validation_alias=_alias("runtime_minutes", "runtimeMinutes"))
    plot: Optional[str] = None
    genres: list[str] = Field(default_factory=list)
    rating: Optional[RestRating] = None
    primary_image: Optional[RestImage] = Field(default=None, validation_alias=_alias("primary_image", "primaryImage"))
    is_adult: bool = Field(default=False, validation_alias=_alias("is_adult", "isAdult"))


class RestTitleSearchResponse(_Wire):
    """GET /search/titles"""
    results: list[RestTitle] = Field(default_factory=list, validation_alias=_alias("results", "titles"))


class RestKnownForCredit(_Wire):
    title: Optional[RestTitle] = None
    category: Optional[str] = None
    characters: list[str] = Field(default_factory=list)


class RestKnownForResponse(_Wire):
    """GET /names/{id}/known_for"""
    known_for: list[RestKnownForCredit] = Field(default_factory=list, validation_alias=_alias("known_for", "knownFor"))
