"""Pydantic models for The Movie Database (TMDB) v3 API."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TMDBPersonSearchResult(_Wire):
    id: int
    name: str
    profile_path: Optional[str] = None
    known_for_department: Optional[str] = None
    popularity: float = 0.0


class TMDBPersonSearchResponse(_Wire):
    """GET /search/person"""
    results: list[TMDBPersonSearchResult] = Field(default_factory=list)


class TMDBPersonDetails(_Wire):
    """GET /person/{id}"""
    id: int
    name: str
    biography: Optional[str] = None
    birthday: Optional[str] = None
    deathday: Optional[str] = None
    place_of_birth: Optional[str] = None
    profile_path: Optional[str] = None
    known_for_department: Optional[str] = None
    popularity: float = 0.0
    also_known_as: list[str] = Field(default_factory=list)


class TMDBMovieCredit(_Wire):
    id: int
    title: str = ""
    character: Optional[str] = None
    job: Optional[str] = None
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    vote_average: float = 0.0
    vote_count: int = 0
    popularity: float = 0.0


class TMDBPersonMovieCredits(_Wire):
    """GET /person/{id}/movie_credits"""
    cast: list[TMDBMovieCredit] = Field(default_factory=list)
    crew: list[TMDBMovieCredit] = Field(default_factory=list)


class TMDBGenre(_Wire):
    id: int
    name: str


class TMDBMovieDetails(_Wire):
    """GET /movie/{id}, and entries of GET /search/movie"""
    id: int
    title: str = ""
    original_title: Optional[str] = None
    release_date: Optional[str] = None
    runtime: Optional[int] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    vote_average: float = 0.0
    vote_count: int = 0
    genres: list[TMDBGenre] = Field(default_factory=list)
    adult: bool = False


class TMDBMovieSearchResponse(_Wire):
    """GET /search/movie"""
    results: list[TMDBMovieDetails] = Field(default_factory=list)


class TMDBCastMember(_Wire):
    id: int
    name: str
    character: Optional[str] = None
    known_for_department: Optional[str] = None
    profile_path: Optional[str] = None


class TMDBCrewMember(_Wire):
    id: int
    name: str
    job: Optional[str] = None
    department: Optional[str] = None
    profile_path: Optional[str] = None


class TMDBMovieCredits(_Wire):
    """GET /movie/{id}/credits"""
    cast: list[TMDBCastMember] = Field(default_factory=list)
    crew: list[TMDBCrewMember] = Field(default_factory=list)
