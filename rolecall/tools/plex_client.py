"""Plex Media Server client: sessions, metadata, activities and capabilities."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import aiohttp
from ..config import RoleCallConfig, TransportOption
from ..errors import (
    AuthorizationError,
    ConfigurationError,
    DecodeError,
    InvalidURLError,
    NotAuthenticatedError,
    RoleCallError,
    SupersededError,
)
from ..models.auth import AuthSession
from ..models.plex import (
    ActivityList,
    MovieMetadata,
    ServerCapabilities,
    SessionList,
)
from ..parsers.common import decode
from ..parsers.plex_xml import parse_activities, parse_movie_metadata, parse_sessions
from ..retry import RetryController
from ..settings_store import SettingsStore, save_auth
from .http import check_status, fetch, parse_json, redact

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PlexClient:
    """Async client for a single Plex Media Server.

    Every call tries the configured transports in order (https first by
    default). A 401 ends the attempt immediately and clears the stored token;
    any other failure moves on to the next transport. Successful results are
    kept as "last known" snapshots which failures never overwrite.
    """

    def __init__(
        self,
        config: RoleCallConfig,
        auth: AuthSession,
        *,
        store: Optional[SettingsStore] = None,
        session: Optional[aiohttp.ClientSession] = None,
        retry: Optional[RetryController] = None,
    ):
        self.config = config
        self.auth = auth
        self._store = store
        self._session = session
        self._owns_session = session is None
        self._retry = retry or RetryController(
            max_attempts=config.retry_max_attempts,
            backoff_step=config.retry_backoff_step,
        )
        self._snapshots: dict[str, Any] = {}
        self._inflight: dict[str, asyncio.Task] = {}

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "X-Plex-Product": self.config.product_name,
                    "X-Plex-Client-Identifier": self.config.client_identifier,
                }
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Cancel in-flight fetches and close the session."""
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    # ------------------------------------------------------------------
    # Last known snapshots

    @property
    def sessions(self) -> Optional[SessionList]:
        return self._snapshots.get("sessions")

    @property
    def movie_metadata(self) -> Optional[MovieMetadata]:
        return self._snapshots.get("metadata")

    @property
    def server_capabilities(self) -> Optional[ServerCapabilities]:
        return self._snapshots.get("capabilities")

    @property
    def activities(self) -> Optional[ActivityList]:
        return self._snapshots.get("activities")

    # ------------------------------------------------------------------
    # Credentials

    def update_server(self, server_ip: str) -> None:
        self.auth.server_ip = server_ip.strip()
        self._persist()

    def logout(self) -> None:
        """Clear the token and every snapshot."""
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self.auth.clear()
        self._snapshots.clear()
        self._persist()
        logger.info("User logged out and credentials cleared")

    def _invalidate_credentials(self) -> None:
        logger.warning("Clearing stored token after authorization failure")
        self.auth.clear()
        self._persist()

    def _persist(self) -> None:
        if self._store is not None:
            save_auth(self._store, self.auth)

    async def validate_token(self) -> bool:
        """Check the token against the server.

        Returns False only when the server rejects the token; unreachable
        servers keep the token so a flaky network does not log the user out.
        """
        if not self.auth.has_login:
            return False
        try:
            await self.fetch_server_capabilities()
        except AuthorizationError:
            return False
        except RoleCallError as e:
            logger.warning(f"Token validation failed but keeping token: {e}")
        return True

    # ------------------------------------------------------------------
    # Requests

    def _url(self, transport: TransportOption, path: str) -> str:
        host = self.auth.server_ip
        if "://" in host:
            host = host.split("://", 1)[1]
        host = host.rstrip("/")
        if not host:
            raise InvalidURLError(f"No host in server address {self.auth.server_ip!r}")
        if host.startswith("["):
            if "]:" not in host:
                host = f"{host}:{self.config.plex_port}"
        elif host.count(":") > 1:
            # bare IPv6 literal
            host = f"[{host}]:{self.config.plex_port}"
        elif ":" not in host:
            host = f"{host}:{self.config.plex_port}"
        return f"{transport.scheme}://{host}{path}"

    async def _get(
        self,
        path: str,
        *,
        accept: str = "application/xml",
        params: Optional[dict[str, Any]] = None,
    ) -> bytes:
        """GET ``path``, trying each transport until one returns 200."""
        if not self.auth.server_ip or not self.auth.token:
            raise NotAuthenticatedError()
        transports = self.config.active_transports
        if not transports:
            raise ConfigurationError("No transport options configured")

        session = await self._get_session()
        query = {"X-Plex-Token": self.auth.token, **(params or {})}
        headers = {"Accept": accept, "User-Agent": self.config.user_agent}
        last_error: Optional[RoleCallError] = None

        for transport in transports:
            url = self._url(transport, path)
            logger.info(f"Fetching {redact(url)} via {transport.scheme.upper()}")
            try:
                status, body = await fetch(
                    session, "GET", url, timeout=transport.timeout, params=query, headers=headers
                )
                check_status(status, body, url)
                logger.info(f"Received {path} via {transport.scheme.upper()}")
                return body
            except AuthorizationError:
                self._invalidate_credentials()
                raise
            except RoleCallError as e:
                last_error = e
                logger.warning(f"Failed with {transport.scheme.upper()}: {e}")
                continue

        assert last_error is not None
        raise last_error

    async def _latest(self, key: str, snapshot: str, load: Callable[[], Awaitable[T]]) -> T:
        """Run ``load`` so that a newer call for ``key`` supersedes this one.

        The superseded caller gets :class:`SupersededError` and its result, if
        one arrives, is dropped instead of replacing the snapshot.
        """
        previous = self._inflight.get(key)
        if previous is not None and not previous.done():
            logger.info(f"Superseding in-flight {key} fetch")
            previous.cancel()

        task = asyncio.ensure_future(load())
        self._inflight[key] = task
        try:
            result = await task
        except asyncio.CancelledError:
            if self._inflight.get(key) is not task:
                raise SupersededError(key) from None
            del self._inflight[key]
            raise
        except Exception as e:
            if self._inflight.get(key) is not task:
                raise SupersededError(key) from e
            del self._inflight[key]
            raise

        if self._inflight.get(key) is not task:
            logger.info(f"Discarding stale {key} result")
            raise SupersededError(key)
        del self._inflight[key]
        if result is not None:
            self._snapshots[snapshot] = result
        return result

    # ------------------------------------------------------------------
    # Resources

    async def fetch_sessions(self) -> SessionList:
        """Get the sessions currently playing on the server."""

        async def load() -> SessionList:
            body = await self._retry.execute(lambda: self._get("/status/sessions"), description="sessions")
            return parse_sessions(body)

        return await self._latest("sessions", "sessions", load)

    async def fetch_movie_metadata(self, rating_key: str) -> Optional[MovieMetadata]:
        """Get full metadata for one library item.

        Returns None when the server knows no item with that key.
        """

        async def load() -> Optional[MovieMetadata]:
            body = await self._retry.execute(
                lambda: self._get(f"/library/metadata/{rating_key}", params={"includeGuids": 1}),
                description="metadata",
            )
            return parse_movie_metadata(body).first

        return await self._latest(f"metadata:{rating_key}", "metadata", load)

    async def fetch_activities(self) -> ActivityList:
        """Get background activities (scans, optimizations) on the server."""

        async def load() -> ActivityList:
            body = await self._retry.execute(lambda: self._get("/activities"), description="activities")
            return parse_activities(body)

        return await self._latest("activities", "activities", load)

    async def fetch_server_capabilities(self) -> ServerCapabilities:
        """Get server identity and feature flags from the server root."""

        async def load() -> ServerCapabilities:
            body = await self._retry.execute(
                lambda: self._get("/", accept="application/json"),
                description="capabilities",
            )
            data = parse_json(body, "capabilities")
            container = data.get("MediaContainer") if isinstance(data, dict) else None
            if not isinstance(container, dict):
                raise DecodeError("capabilities", field="MediaContainer", reason="envelope missing")
            return decode(ServerCapabilities, container, "capabilities")

        return await self._latest("capabilities", "capabilities", load)
