"""Filmography lookups behind one provider interface.

Two backends implement :class:`FilmographyProvider`: the free IMDb-compatible
REST service and TMDB (bearer token). :class:`FilmographyClient` adds caching
and retries on top of whichever backend is active.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

import aiohttp

from ..cache import TTLCache
from ..config import RoleCallConfig
from ..errors import ConfigurationError, ProviderUnsupportedError
from ..models.filmography import (
    CreditList,
    PersonRecord,
    PersonSearchResult,
    TitleCastMember,
    TitleRecord,
)
from ..models.plex import MovieMetadata
from ..parsers import filmography as parsers
from ..retry import RetryController
from .http import check_status, fetch, parse_json, user_agent_headers

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FilmographyProvider(ABC):
    """Person and title lookups against one filmography service.

    Lookups by id return None when the service does not know the id; searches
    return an empty list when nothing matches.
    """

    name = ""

    def __init__(self, config: RoleCallConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._default_headers())
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    def _default_headers(self) -> dict[str, str]:
        return user_agent_headers(self.config.user_agent)

    @property
    @abstractmethod
    def base_url(self) -> str:
        ...

    async def _get_json(self, path: str, endpoint: str, params: Optional[dict[str, Any]] = None) -> Optional[Any]:
        """GET ``path`` and decode the JSON body; None on 404."""
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        logger.info(f"{self.name}: GET {path}")
        status, body = await fetch(
            session,
            "GET",
            url,
            timeout=self.config.filmography_timeout,
            params=params,
            headers=self._default_headers(),
        )
        if status == 404:
            logger.info(f"{self.name}: {endpoint} not found")
            return None
        check_status(status, body, url)
        return parse_json(body, f"{self.name}:{endpoint}")

    def movie_id_for(self, metadata: MovieMetadata) -> Optional[str]:
        """The id this provider uses for a Plex library item, if Plex knows it."""
        return None

    @abstractmethod
    async def search_person(self, name: str, movie_id: Optional[str] = None) -> list[PersonSearchResult]:
        ...

    @abstractmethod
    async def get_person_details(self, person_id: str) -> Optional[PersonRecord]:
        ...

    @abstractmethod
    async def get_person_credits(self, person_id: str) -> Optional[CreditList]:
        ...

    @abstractmethod
    async def get_movie_details(self, title_id: str) -> Optional[TitleRecord]:
        ...

    @abstractmethod
    async def get_title_credits(self, title_id: str) -> list[TitleCastMember]:
        ...

    @abstractmethod
    async def search_titles(self, query: str, year: Optional[int] = None) -> list[TitleRecord]:
        ...


class IMDbBackend(FilmographyProvider):
    """The IMDb-compatible REST API. No key required.

    The service has no working name search, so people can only be found
    through the cast of a known title.
    """

    name = "imdb"

    @property
    def base_url(self) -> str:
        return self.config.imdb_base_url

    def movie_id_for(self, metadata: MovieMetadata) -> Optional[str]:
        return metadata.imdb_id

    async def search_person(self, name: str, movie_id: Optional[str] = None) -> list[PersonSearchResult]:
        if movie_id is None:
            raise ProviderUnsupportedError(self.name, "search by name without a title")

        wanted = name.strip().lower()
        if not wanted:
            return []
        for member in await self.get_title_credits(movie_id):
            if not member.is_actor:
                continue
            candidate = member.name.lower()
            if wanted in candidate or candidate in wanted:
                return [PersonSearchResult(
                    id=member.person_id,
                    name=member.name,
                    image_url=member.image_url,
                    known_for_department="Acting",
                )]
        logger.info(f"imdb: no actor matching '{name}' in {movie_id}")
        return []

    async def get_person_details(self, person_id: str) -> Optional[PersonRecord]:
        data = await self._get_json(f"/names/{person_id}", "names")
        return None if data is None else parsers.imdb_person(data)

    async def get_person_credits(self, person_id: str) -> Optional[CreditList]:
        data = await self._get_json(f"/names/{person_id}/known_for", "known_for", params={"page_size": 20})
        return None if data is None else parsers.imdb_known_for(data)

    async def get_movie_details(self, title_id: str) -> Optional[TitleRecord]:
        data = await self._get_json(f"/titles/{title_id}", "titles")
        return None if data is None else parsers.imdb_title(data)

    async def get_title_credits(self, title_id: str) -> list[TitleCastMember]:
        data = await self._get_json(f"/titles/{title_id}/credits", "credits", params={"page_size": 50})
        return [] if data is None else parsers.imdb_title_credits(data)

    async def search_titles(self, query: str, year: Optional[int] = None) -> list[TitleRecord]:
        data = await self._get_json("/search/titles", "search", params={"q": query, "page_size": 10})
        if data is None:
            return []
        results = parsers.imdb_title_search(data)
        if year is not None:
            results = [r for r in results if r.year == year]
        return results


class TMDBBackend(FilmographyProvider):
    """The Movie Database v3 API, authenticated with a read access token."""

    name = "tmdb"

    def __init__(self, config: RoleCallConfig, session: Optional[aiohttp.ClientSession] = None):
        if not config.tmdb_access_token:
            raise ConfigurationError("TMDB_ACCESS_TOKEN not configured")
        super().__init__(config, session)
        self.images = parsers.TMDBImages(config.tmdb_image_base_url)

    @property
    def base_url(self) -> str:
        return self.config.tmdb_base_url

    def _default_headers(self) -> dict[str, str]:
        headers = super()._default_headers()
        headers["Authorization"] = f"Bearer {self.config.tmdb_access_token}"
        return headers

    def movie_id_for(self, metadata: MovieMetadata) -> Optional[str]:
        return str(metadata.tmdb_id) if metadata.tmdb_id is not None else None

    async def search_person(self, name: str, movie_id: Optional[str] = None) -> list[PersonSearchResult]:
        data = await self._get_json("/search/person", "search/person", params={"query": name})
        return [] if data is None else parsers.tmdb_person_search(data, self.images)

    async def get_person_details(self, person_id: str) -> Optional[PersonRecord]:
        data = await self._get_json(f"/person/{person_id}", "person")
        return None if data is None else parsers.tmdb_person(data, self.images)

    async def get_person_credits(self, person_id: str) -> Optional[CreditList]:
        data = await self._get_json(f"/person/{person_id}/movie_credits", "movie_credits")
        return None if data is None else parsers.tmdb_person_credits(data, self.images)

    async def get_movie_details(self, title_id: str) -> Optional[TitleRecord]:
        data = await self._get_json(f"/movie/{title_id}", "movie")
        return None if data is None else parsers.tmdb_movie(data, self.images)

    async def get_title_credits(self, title_id: str) -> list[TitleCastMember]:
        data = await self._get_json(f"/movie/{title_id}/credits", "credits")
        return [] if data is None else parsers.tmdb_movie_credits(data, self.images)

    async def search_titles(self, query: str, year: Optional[int] = None) -> list[TitleRecord]:
        params: dict[str, Any] = {"query": query}
        if year is not None:
            params["year"] = year
        data = await self._get_json("/search/movie", "search/movie", params=params)
        return [] if data is None else parsers.tmdb_movie_search(data, self.images)


def build_provider(config: RoleCallConfig, session: Optional[aiohttp.ClientSession] = None) -> FilmographyProvider:
    """Create the backend named by ``config.filmography_backend``."""
    if config.filmography_backend == "tmdb":
        return TMDBBackend(config, session)
    return IMDbBackend(config, session)


class FilmographyClient:
    """Cached, retried access to the active filmography provider.

    Results are cached under ``provider:endpoint:id`` only after they were
    fetched and decoded in full. Missing records (None) are not cached.
    """

    def __init__(
        self,
        provider: FilmographyProvider,
        cache: Optional[TTLCache] = None,
        retry: Optional[RetryController] = None,
    ):
        self.provider = provider
        self.cache = cache if cache is not None else TTLCache(
            ttl=provider.config.cache_ttl,
            max_entries=provider.config.cache_max_entries,
        )
        self._retry = retry or RetryController(
            max_attempts=provider.config.retry_max_attempts,
            backoff_step=provider.config.retry_backoff_step,
        )

    async def close(self):
        await self.provider.close()

    async def _cached(self, endpoint: str, key: Any, load: Callable[[], Awaitable[T]]) -> T:
        cache_key = f"{self.provider.name}:{endpoint}:{key}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.info(f"Using cached {endpoint} for {key}")
            return cached
        result = await self._retry.execute(load, description=f"{self.provider.name} {endpoint}")
        if result is not None:
            self.cache.put(cache_key, result)
        return result

    async def fetch_person(self, person_id: str) -> Optional[PersonRecord]:
        """Biographical details for one person."""
        return await self._cached("person", person_id, lambda: self.provider.get_person_details(person_id))

    async def fetch_person_credits(self, person_id: str) -> Optional[CreditList]:
        return await self._cached("credits", person_id, lambda: self.provider.get_person_credits(person_id))

    async def fetch_title(self, title_id: str) -> Optional[TitleRecord]:
        return await self._cached("title", title_id, lambda: self.provider.get_movie_details(title_id))

    async def fetch_title_credits(self, title_id: str) -> list[TitleCastMember]:
        return await self._cached("title_credits", title_id, lambda: self.provider.get_title_credits(title_id))

    async def search_person(self, name: str, movie_id: Optional[str] = None) -> list[PersonSearchResult]:
        key = f"{name.lower()}@{movie_id or ''}"
        return await self._cached("search_person", key, lambda: self.provider.search_person(name, movie_id))

    async def search_titles(self, query: str, year: Optional[int] = None) -> list[TitleRecord]:
        key = f"{query.lower()}@{year or ''}"
        return await self._cached("search_titles", key, lambda: self.provider.search_titles(query, year))

    async def find_actor(self, name: str, metadata: Optional[MovieMetadata] = None) -> Optional[PersonSearchResult]:
        """Best match for an actor, using the movie's cast when the provider needs it."""
        movie_id = self.provider.movie_id_for(metadata) if metadata is not None else None
        results = await self.search_person(name, movie_id)
        return results[0] if results else None
