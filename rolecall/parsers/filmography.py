"""Decode filmography provider JSON into provider-neutral records."""

import logging
from typing import Any, Optional

from ..models.filmography import (
    CreditList,
    PersonCredit,
    PersonRecord,
    PersonSearchResult,
    PrecisionDate,
    RatingAggregate,
    TitleCastMember,
    TitleRecord,
)
from ..models.imdb import (
    RestCreditsResponse,
    RestDate,
    RestKnownForResponse,
    RestPersonInfo,
    RestRating,
    RestTitle,
    RestTitleSearchResponse,
)
from ..models.tmdb import (
    TMDBMovieCredits,
    TMDBMovieDetails,
    TMDBMovieSearchResponse,
    TMDBPersonDetails,
    TMDBPersonMovieCredits,
    TMDBPersonSearchResponse,
)
from .common import decode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# IMDb REST

def _imdb_date(value: Optional[RestDate]) -> Optional[PrecisionDate]:
    if value is None or not value.year:
        return None
    if value.month and value.day:
        return PrecisionDate(year=value.year, month=value.month, day=value.day)
    return PrecisionDate(year=value.year)


def _imdb_rating(value: Optional[RestRating]) -> Optional[RatingAggregate]:
    if value is None:
        return None
    return RatingAggregate(value=value.aggregate_rating, votes=value.votes_count)


def _imdb_title(title: RestTitle) -> TitleRecord:
    return TitleRecord(
        id=title.id,
        title=title.primary_title or title.original_title or "Unknown Title",
        original_title=title.original_title,
        year=title.start_year,
        runtime_minutes=title.runtime_minutes,
        plot=title.plot,
        image_url=title.primary_image.url if title.primary_image else None,
        rating=_imdb_rating(title.rating),
        genres=title.genres,
        is_adult=title.is_adult,
    )


def imdb_person(payload: Any, endpoint: str = "imdb:names") -> PersonRecord:
    info = decode(RestPersonInfo, payload, endpoint)
    return PersonRecord(
        id=info.id,
        name=info.display_name,
        biography=info.biography,
        birth_date=_imdb_date(info.birth_date),
        death_date=_imdb_date(info.death_date),
        birth_place=info.birth_location,
        death_place=info.death_location,
        image_url=info.primary_image.url if info.primary_image else None,
        known_for_department=info.primary_professions[0] if info.primary_professions else None,
        professions=info.primary_professions,
    )


def imdb_known_for(payload: Any, endpoint: str = "imdb:known_for") -> CreditList:
    response = decode(RestKnownForResponse, payload, endpoint)
    cast = []
    for credit in response.known_for:
        if credit.title is None:
            continue
        title = credit.title
        cast.append(PersonCredit(
            title_id=title.id,
            title=title.primary_title or title.original_title or "Unknown Title",
            character=credit.characters[0] if credit.characters else None,
            job=credit.category,
            year=title.start_year,
            image_url=title.primary_image.url if title.primary_image else None,
            rating=_imdb_rating(title.rating),
        ))
    # The known-for endpoint does not separate crew work from acting.
    return CreditList(cast=cast, crew=[])


def imdb_title(payload: Any, endpoint: str = "imdb:titles") -> TitleRecord:
    return _imdb_title(decode(RestTitle, payload, endpoint))


def imdb_title_credits(payload: Any, endpoint: str = "imdb:credits") -> list[TitleCastMember]:
    response = decode(RestCreditsResponse, payload, endpoint)
    return [
        TitleCastMember(
            person_id=credit.name.id,
            name=credit.name.display_name,
            category=credit.category.lower() or None,
            characters=credit.characters,
            image_url=credit.name.primary_image.url if credit.name.primary_image else None,
        )
        for credit in response.credits
    ]


def imdb_title_search(payload: Any, endpoint: str = "imdb:search") -> list[TitleRecord]:
    response = decode(RestTitleSearchResponse, payload, endpoint)
    return [_imdb_title(title) for title in response.results]


# ---------------------------------------------------------------------------
# TMDB

def _year(date: Optional[str]) -> Optional[int]:
    parsed = PrecisionDate.from_iso(date)
    return parsed.year if parsed else None


class TMDBImages:
    """Builds full image URLs from TMDB relative paths."""

    def __init__(self, base_url: str = "https://image.tmdb.org/t/p") -> None:
        self.base_url = base_url.rstrip("/")

    def url(self, path: Optional[str], size: str = "w500") -> Optional[str]:
        if not path:
            return None
        return f"{self.base_url}/{size}{path}"


def tmdb_person_search(payload: Any, images: TMDBImages, endpoint: str = "tmdb:search/person") -> list[PersonSearchResult]:
    response = decode(TMDBPersonSearchResponse, payload, endpoint)
    return [
        PersonSearchResult(
            id=str(result.id),
            name=result.name,
            image_url=images.url(result.profile_path),
            known_for_department=result.known_for_department,
            popularity=result.popularity,
        )
        for result in response.results
    ]


def tmdb_person(payload: Any, images: TMDBImages, endpoint: str = "tmdb:person") -> PersonRecord:
    details = decode(TMDBPersonDetails, payload, endpoint)
    return PersonRecord(
        id=str(details.id),
        name=details.name,
        biography=details.biography or None,
        birth_date=PrecisionDate.from_iso(details.birthday),
        death_date=PrecisionDate.from_iso(details.deathday),
        birth_place=details.place_of_birth,
        image_url=images.url(details.profile_path),
        known_for_department=details.known_for_department,
        popularity=details.popularity,
    )


def tmdb_person_credits(payload: Any, images: TMDBImages, endpoint: str = "tmdb:movie_credits") -> CreditList:
    credits = decode(TMDBPersonMovieCredits, payload, endpoint)

    def convert(credit) -> PersonCredit:
        return PersonCredit(
            title_id=str(credit.id),
            title=credit.title or "Unknown Title",
            character=credit.character or None,
            job=credit.job,
            year=_year(credit.release_date),
            image_url=images.url(credit.poster_path, size="w342"),
            rating=RatingAggregate(value=credit.vote_average, votes=credit.vote_count),
        )

    return CreditList(
        cast=[convert(c) for c in credits.cast],
        crew=[convert(c) for c in credits.crew],
    )


def _tmdb_title(details: TMDBMovieDetails, images: TMDBImages) -> TitleRecord:
    return TitleRecord(
        id=str(details.id),
        title=details.title or details.original_title or "Unknown Title",
        original_title=details.original_title,
        year=_year(details.release_date),
        runtime_minutes=details.runtime,
        plot=details.overview or None,
        image_url=images.url(details.poster_path, size="w342"),
        rating=RatingAggregate(value=details.vote_average, votes=details.vote_count),
        genres=[g.name for g in details.genres],
        is_adult=details.adult,
    )


def tmdb_movie(payload: Any, images: TMDBImages, endpoint: str = "tmdb:movie") -> TitleRecord:
    return _tmdb_title(decode(TMDBMovieDetails, payload, endpoint), images)


def tmdb_movie_search(payload: Any, images: TMDBImages, endpoint: str = "tmdb:search/movie") -> list[TitleRecord]:
    response = decode(TMDBMovieSearchResponse, payload, endpoint)
    return [_tmdb_title(result, images) for result in response.results]


def tmdb_movie_credits(payload: Any, images: TMDBImages, endpoint: str = "tmdb:credits") -> list[TitleCastMember]:
    credits = decode(TMDBMovieCredits, payload, endpoint)
    members = [
        TitleCastMember(
            person_id=str(c.id),
            name=c.name,
            category="actor",
            characters=[c.character] if c.character else [],
            image_url=images.url(c.profile_path),
        )
        for c in credits.cast
    ]
    members.extend(
        TitleCastMember(
            person_id=str(c.id),
            name=c.name,
            category=(c.job or c.department or "").lower() or None,
            image_url=images.url(c.profile_path),
        )
        for c in credits.crew
    )
    return members
