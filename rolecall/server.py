"""RoleCall MCP Server - who is in what you're watching on Plex."""

import argparse
import logging
import os
from datetime import date
from typing import Any, Awaitable, Callable, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import ValidationError

from .config import RoleCallConfig
from .errors import ProviderUnsupportedError, RoleCallError, describe_error
from .models.plex import MovieMetadata, Session
from .settings_store import MemorySettingsStore, SettingsStore, load_auth, save_auth
from .tools.filmography_client import FilmographyClient, build_provider
from .tools.plex_auth import PinLogin
from .tools.plex_client import PlexClient
from .tools.subtitles import SubtitleClient, actors_in_scene

load_dotenv()

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO")),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = FastMCP("rolecall-mcp")


class RoleCallApp:
    """The clients behind the tools, sharing one config and one login."""

    def __init__(self, config: RoleCallConfig, store: SettingsStore):
        self.config = config
        self.store = store
        self.auth = load_auth(store)
        self.plex = PlexClient(config, self.auth, store=store)
        self.login = PinLogin(config, self.auth, store=store)
        self.filmography = FilmographyClient(build_provider(config))
        self.subtitles = SubtitleClient(config)

    @classmethod
    def from_env(cls) -> "RoleCallApp":
        """Seed the settings store from PLEX_URL / PLEX_TOKEN if they are set."""
        config = RoleCallConfig.from_env()
        store = MemorySettingsStore()
        auth = load_auth(store)
        auth.server_ip = os.getenv("PLEX_URL", os.getenv("PLEX_SERVER", "")).strip()
        auth.token = os.getenv("PLEX_TOKEN", "").strip()
        save_auth(store, auth)
        return cls(config, store)


# Global app instance
_app: Optional[RoleCallApp] = None


def get_app() -> RoleCallApp:
    """Get or create the RoleCall app."""
    global _app
    if _app is None:
        try:
            _app = RoleCallApp.from_env()
        except (RoleCallError, ValidationError, ValueError) as e:
            raise ToolError(f"Configuration error: {str(e)}")
    return _app


def _fail(action: str, error: Exception) -> ToolError:
    if isinstance(error, RoleCallError):
        logger.warning(f"{action} failed: {error}")
        return ToolError(f"{action} failed: {describe_error(error)}")
    logger.exception(f"{action} failed unexpectedly")
    return ToolError(f"Unexpected error: {str(error)}")


async def _refresh(action: str, fetch: Callable[[], Awaitable[Any]], snapshot: Callable[[], Any]) -> tuple[Any, Optional[str]]:
    """Fetch fresh data, falling back to the last known snapshot on failure."""
    try:
        return await fetch(), None
    except RoleCallError as e:
        stale = snapshot()
        if stale is None:
            raise _fail(action, e)
        logger.warning(f"{action} failed, returning last known data: {e}")
        return stale, e.user_message


def _session_dict(s: Session) -> dict:
    data = {
        "rating_key": s.id,
        "type": s.kind,
        "title": s.title,
        "year": s.year,
        "progress_percent": round(s.progress * 100, 1),
        "position_seconds": s.view_offset // 1000,
        "duration_seconds": s.duration // 1000,
        "user": s.user.title if s.user else None,
        "player": s.player.title if s.player else None,
        "state": s.player.state if s.player else None,
        "transcoding": s.transcode.is_transcoding if s.transcode else False,
    }
    if s.kind == "track":
        data["album"] = s.parent_title
        data["artist"] = s.grandparent_title
    return data


def _movie_dict(m: MovieMetadata) -> dict:
    return {
        "rating_key": m.id,
        "title": m.title,
        "year": m.year,
        "tagline": m.tagline,
        "summary": m.summary,
        "studio": m.studio,
        "content_rating": m.content_rating,
        "duration_minutes": m.duration // 60000 if m.duration else None,
        "imdb_id": m.imdb_id,
        "tmdb_id": m.tmdb_id,
        "genres": [g.tag for g in m.genres],
        "directors": [d.tag for d in m.directors],
        "writers": [w.tag for w in m.writers],
        "ratings": [
            {"source": r.source, "type": r.type, "value": r.value}
            for r in m.ratings
        ],
        "cast": [
            {"actor": r.tag, "character": r.role}
            for r in m.roles
        ],
    }


async def _metadata(app: RoleCallApp, rating_key: str) -> MovieMetadata:
    metadata = await app.plex.fetch_movie_metadata(rating_key)
    if metadata is None:
        raise ToolError(f"No library item with rating key {rating_key}")
    return metadata


# ----------------------------------------------------------------------
# Login


@mcp.tool()
async def login() -> dict:
    """Start signing in to Plex.

    Returns a URL the user must open to approve RoleCall. Approval is picked
    up in the background; check progress with login_status.

    Returns:
        The authorization URL and current login state
    """
    app = get_app()
    try:
        status = await app.login.start()
    except Exception as e:
        raise _fail("Login", e)
    return {
        "state": status.state.value,
        "auth_url": status.auth_url,
        "message": "Open auth_url in a browser and approve the request, then call login_status.",
    }


@mcp.tool()
async def login_status() -> dict:
    """Report progress of the Plex sign-in started with login."""
    app = get_app()
    status = app.login.status
    return {
        "state": status.state.value,
        "attempts": status.attempts,
        "auth_url": status.auth_url,
        "error": status.error,
        "finished": status.state.finished,
        "logged_in": app.auth.has_login,
        "server": app.auth.server_ip or None,
    }


@mcp.tool()
async def logout() -> dict:
    """Forget the Plex token and all cached server data."""
    app = get_app()
    app.login.cancel()
    app.plex.logout()
    return {"logged_in": False}


@mcp.tool()
async def set_server(address: str) -> dict:
    """Set the Plex Media Server address.

    Args:
        address: Host name or IP, optionally with a port (default port 32400)
    """
    if not address.strip():
        raise ToolError("Server address must not be empty")
    app = get_app()
    app.plex.update_server(address)
    return {"server": app.auth.server_ip, "logged_in": app.auth.has_login}


# ----------------------------------------------------------------------
# Plex server


@mcp.tool()
async def server_status() -> dict:
    """Check the Plex server is reachable and the token is accepted.

    Returns:
        Server identity, version and feature flags
    """
    app = get_app()
    if not app.auth.has_login:
        return {"status": "not_logged_in", "server": app.auth.server_ip or None}
    try:
        caps = await app.plex.fetch_server_capabilities()
    except RoleCallError as e:
        return {
            "status": "unhealthy",
            "error": e.user_message,
            "logged_in": app.auth.has_login,
        }
    return {
        "status": "healthy",
        "server": {
            "name": caps.friendlyName,
            "version": caps.version,
            "platform": caps.platform,
            "machine_identifier": caps.machineIdentifier,
            "owner": caps.myPlexUsername,
            "plex_pass": caps.myPlexSubscription,
            "transcoder_video": caps.transcoderVideo,
            "active_transcodes": caps.transcoderActiveVideoSessions,
        },
    }


@mcp.tool()
async def now_playing() -> dict:
    """List what is currently playing on the Plex server.

    Returns:
        Active sessions with title, progress, user and player. If the server
        cannot be reached the last known sessions are returned with an error.
    """
    app = get_app()
    sessions, error = await _refresh(
        "Fetching sessions", app.plex.fetch_sessions, lambda: app.plex.sessions
    )
    result = {
        "count": len(sessions.sessions),
        "sessions": [_session_dict(s) for s in sessions.sessions],
    }
    if error:
        result["error"] = error
    return result


@mcp.tool()
async def server_activities() -> dict:
    """List background activities (library scans, optimizations) on the server."""
    app = get_app()
    activities, error = await _refresh(
        "Fetching activities", app.plex.fetch_activities, lambda: app.plex.activities
    )
    result = {
        "count": len(activities.activities),
        "activities": [
            {
                "title": a.title,
                "subtitle": a.subtitle,
                "type": a.type,
                "progress": a.progress,
                "cancellable": a.cancellable,
            }
            for a in activities.activities
        ],
    }
    if error:
        result["error"] = error
    return result


@mcp.tool()
async def movie_details(rating_key: str) -> dict:
    """Get details and cast for a movie in the Plex library.

    Args:
        rating_key: The Plex rating key (from now_playing)
    """
    app = get_app()
    try:
        return _movie_dict(await _metadata(app, rating_key))
    except RoleCallError as e:
        raise _fail("Fetching movie details", e)


# ----------------------------------------------------------------------
# Filmography


@mcp.tool()
async def find_actor(name: str, rating_key: Optional[str] = None) -> dict:
    """Find an actor's filmography id by name.

    Args:
        name: Actor name
        rating_key: Plex rating key of a movie they appear in. Required by
            the IMDb provider, which can only search within a movie's cast.
    """
    app = get_app()
    try:
        metadata = await _metadata(app, rating_key) if rating_key else None
        match = await app.filmography.find_actor(name, metadata)
    except ProviderUnsupportedError as e:
        raise ToolError(f"{e.user_message}. Pass the rating_key of a movie this actor is in.")
    except RoleCallError as e:
        raise _fail("Actor search", e)
    if match is None:
        return {"query": name, "found": False}
    return {
        "query": name,
        "found": True,
        "provider": app.filmography.provider.name,
        "person_id": match.id,
        "name": match.name,
        "image_url": match.image_url,
    }


@mcp.tool()
async def actor_details(person_id: str) -> dict:
    """Get biographical details for an actor.

    Args:
        person_id: Provider id from find_actor (e.g. nm0000071 for IMDb)
    """
    app = get_app()
    try:
        person = await app.filmography.fetch_person(person_id)
    except RoleCallError as e:
        raise _fail("Fetching actor details", e)
    if person is None:
        raise ToolError(f"No person with id {person_id}")
    return {
        "person_id": person.id,
        "name": person.name,
        "born": person.birth_date.iso if person.birth_date else None,
        "died": person.death_date.iso if person.death_date else None,
        "age": person.age(date.today().year),
        "birth_place": person.birth_place,
        "known_for": person.known_for_department,
        "biography": person.biography,
        "image_url": person.image_url,
    }


@mcp.tool()
async def actor_filmography(person_id: str, limit: int = 20) -> dict:
    """List the titles an actor is known for, newest first.

    Args:
        person_id: Provider id from find_actor
        limit: Maximum number of credits to return (default 20)
    """
    app = get_app()
    try:
        credits = await app.filmography.fetch_person_credits(person_id)
    except RoleCallError as e:
        raise _fail("Fetching filmography", e)
    if credits is None:
        raise ToolError(f"No person with id {person_id}")
    ordered = credits.sorted_by_year()
    return {
        "person_id": person_id,
        "count": len(ordered),
        "credits": [
            {
                "title_id": c.title_id,
                "title": c.title,
                "year": c.year,
                "character": c.character,
                "job": c.job,
                "rating": round(c.rating.value, 1) if c.rating and c.rating.value else None,
            }
            for c in ordered[:limit]
        ],
    }


@mcp.tool()
async def scene_actors(rating_key: str, position_seconds: Optional[float] = None) -> dict:
    """Guess which actors are on screen from the movie's subtitles.

    Args:
        rating_key: Plex rating key of the movie
        position_seconds: Playback position; defaults to the position of the
            current session playing this movie
    """
    app = get_app()
    try:
        metadata = await _metadata(app, rating_key)
        if position_seconds is None:
            sessions = await app.plex.fetch_sessions()
            playing = next((s for s in sessions.videos if s.id == rating_key), None)
            if playing is None:
                raise ToolError("This movie is not playing; pass position_seconds")
            position_seconds = playing.view_offset / 1000.0
        if metadata.tmdb_id is None:
            raise ToolError("Plex has no TMDB id for this movie, so subtitles cannot be found")
        lines = await app.subtitles.actor_lines(metadata.tmdb_id, metadata.cast_mapping)
    except RoleCallError as e:
        raise _fail("Scene lookup", e)

    actors = actors_in_scene(position_seconds, lines)
    return {
        "rating_key": rating_key,
        "position_seconds": position_seconds,
        "subtitles_found": bool(lines),
        "actors": [{"character": c, "actor": a} for c, a in actors],
    }


def _startup_summary(config: RoleCallConfig) -> str:
    transports = " -> ".join(t.scheme for t in config.active_transports) or "none"
    plex = os.getenv("PLEX_URL") or os.getenv("PLEX_SERVER") or "not set"
    return f"Plex server: {plex}, transports: {transports}, filmography backend: {config.filmography_backend}"


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="RoleCall MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport mode (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8080")),
        help="Port for HTTP transport (default: 8080)",
    )

    args = parser.parse_args()

    logger.info(f"Starting RoleCall MCP server with {args.transport} transport")
    try:
        logger.info(_startup_summary(RoleCallConfig.from_env()))
    except (ValidationError, ValueError) as e:
        logger.error(f"Configuration error: {e}")

    if args.transport == "stdio":
        mcp.run()
    elif args.transport == "sse":
        mcp.run(transport="sse", host=args.host, port=args.port, stateless_http=True)
    elif args.transport == "streamable-http":
        mcp.run(transport="streamable-http", host=args.host, port=args.port, stateless_http=True)


if __name__ == "__main__":
    main()
