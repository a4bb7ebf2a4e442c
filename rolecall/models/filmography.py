"""Provider-neutral filmography records.

Both filmography backends decode their own wire formats and return these
records, so callers never depend on which backend is active.
"""

from typing import Optional
from pydantic import BaseModel, Field


class PrecisionDate(BaseModel):
    """A date known to year precision, optionally with month and day."""
    year: int
    month: Optional[int] = None
    day: Optional[int] = None

    @property
    def iso(self) -> str:
        if self.month and self.day:
            return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"
        return f"{self.year:04d}"

    @classmethod
    def from_iso(cls, value: Optional[str]) -> Optional["PrecisionDate"]:
        """Parse "YYYY", "YYYY-MM" or "YYYY-MM-DD"; anything else is absent."""
        if not value:
            return None
        parts = value.split("-")
        try:
            numbers = [int(p) for p in parts[:3]]
        except ValueError:
            return None
        if not numbers or numbers[0] <= 0:
            return None
        year = numbers[0]
        month = numbers[1] if len(numbers) > 1 else None
        day = numbers[2] if len(numbers) > 2 else None
        return cls(year=year, month=month, day=day)


class RatingAggregate(BaseModel):
    """Aggregate user rating and how many votes it is based on."""
    value: float = 0.0
    votes: int = 0


class PersonRecord(BaseModel):
    """Biographical details for a cast or crew member."""
    id: str
    name: str
    biography: Optional[str] = None
    birth_date: Optional[PrecisionDate] = None
    death_date: Optional[PrecisionDate] = None
    birth_place: Optional[str] = None
    death_place: Optional[str] = None
    image_url: Optional[str] = None
    known_for_department: Optional[str] = None
    professions: list[str] = Field(default_factory=list)
    popularity: float = 0.0

    def age(self, today_year: int) -> Optional[int]:
        """Age at death, or age in ``today_year`` when still living."""
        if self.birth_date is None:
            return None
        end = self.death_date.year if self.death_date else today_year
        return end - self.birth_date.year


class PersonSearchResult(BaseModel):
    """A candidate match from a person search."""
    id: str
    name: str
    image_url: Optional[str] = None
    known_for_department: Optional[str] = None
    popularity: float = 0.0


class PersonCredit(BaseModel):
    """One title in a person's filmography."""
    title_id: str
    title: str
    character: Optional[str] = None
    job: Optional[str] = None
    year: Optional[int] = None
    image_url: Optional[str] = None
    rating: Optional[RatingAggregate] = None


class CreditList(BaseModel):
    """A person's acting and crew credits."""
    cast: list[PersonCredit] = Field(default_factory=list)
    crew: list[PersonCredit] = Field(default_factory=list)

    def sorted_by_year(self) -> list[PersonCredit]:
        """All credits, newest first; undated credits last."""
        credits = [*self.cast, *self.crew]
        return sorted(credits, key=lambda c: (c.year is None, -(c.year or 0)))


class TitleRecord(BaseModel):
    """Descriptive details for a movie or show."""
    id: str
    title: str
    original_title: Optional[str] = None
    year: Optional[int] = None
    runtime_minutes: Optional[int] = None
    plot: Optional[str] = None
    image_url: Optional[str] = None
    rating: Optional[RatingAggregate] = None
    genres: list[str] = Field(default_factory=list)
    is_adult: bool = False


class TitleCastMember(BaseModel):
    """A person credited on a title."""
    person_id: str
    name: str
    category: Optional[str] = None  # "actor", "actress", "director", ...
    characters: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None

    @property
    def is_actor(self) -> bool:
        return (self.category or "").lower() in ("actor", "actress", "acting")
