"""Work out who is on screen from the movie's English subtitles.

Cues that mention a character by name are attributed to the actor playing
that character. This is a heuristic and only ever a best effort.
"""

import logging
import re
from typing import Iterable, Optional

import aiohttp

from ..config import RoleCallConfig
from ..errors import DecodeError
from ..models.subtitles import ActorLine, SubtitleEntry, WyzieListing
from ..parsers.common import decode
from ..retry import RetryController
from .http import check_status, fetch, parse_json, user_agent_headers

logger = logging.getLogger(__name__)

_TIMING = re.compile(
    r"(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})\s*-->\s*(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})"
)


def _seconds(h: str, m: str, s: str, ms: str) -> float:
    return int(h) * 3600 + int(m) * 60 + int(s) + int(ms) / 1000.0


def parse_srt(text: str) -> list[SubtitleEntry]:
    """Parse SRT text into cues. Blocks without a timing line are skipped."""
    text = text.replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff")
    entries = []
    for block in re.split(r"\n\s*\n", text.strip()):
        lines = block.split("\n")
        for index, line in enumerate(lines):
            match = _TIMING.search(line)
            if match:
                break
        else:
            continue
        body = "\n".join(lines[index + 1:]).strip()
        if not body:
            continue
        g = match.groups()
        entries.append(SubtitleEntry(start=_seconds(*g[:4]), end=_seconds(*g[4:]), text=body))
    return entries


def map_characters_to_actors(
    cast: Iterable[tuple[str, str]],
    entries: Iterable[SubtitleEntry],
) -> list[ActorLine]:
    """Attribute each cue to the characters it names.

    ``cast`` holds ``(character, actor)`` pairs. Full character names are
    matched first, then first names that no full name already claims. Once a
    longer name matches, the shorter names inside it are not matched again
    at that position.
    """
    cast = [(character.strip(), actor) for character, actor in cast if character and character.strip()]
    names: dict[str, tuple[str, str]] = {}
    for character, actor in cast:
        names.setdefault(character.upper(), (character, actor))
    for character, actor in cast:
        first = character.split()[0].upper()
        names.setdefault(first, (character, actor))

    ordered = sorted(names, key=len, reverse=True)
    patterns = [(name, re.compile(rf"\b{re.escape(name)}\b")) for name in ordered]

    mapped = []
    for entry in entries:
        text = entry.text.upper()
        found: dict[str, tuple[int, str]] = {}
        for name, pattern in patterns:
            match = pattern.search(text)
            if match is None:
                continue
            character, actor = names[name]
            found.setdefault(character, (match.start(), actor))
            text = pattern.sub(lambda m: " " * len(m.group(0)), text)
        for character, (_, actor) in sorted(found.items(), key=lambda item: item[1][0]):
            mapped.append(ActorLine(
                start=entry.start,
                end=entry.end,
                character=character,
                actor=actor,
                line=entry.text,
            ))
    return mapped


def actors_in_scene(timestamp: float, lines: Iterable[ActorLine]) -> list[tuple[str, Optional[str]]]:
    """(character, actor) pairs whose cue spans ``timestamp``."""
    seen = set()
    result = []
    for line in lines:
        if not line.start <= timestamp <= line.end:
            continue
        pair = (line.character, line.actor)
        if pair not in seen:
            seen.add(pair)
            result.append(pair)
    return result


class SubtitleClient:
    """Downloads English SRT subtitles by TMDB id."""

    def __init__(
        self,
        config: RoleCallConfig,
        session: Optional[aiohttp.ClientSession] = None,
        retry: Optional[RetryController] = None,
    ):
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._retry = retry or RetryController(
            max_attempts=config.retry_max_attempts,
            backoff_step=config.retry_backoff_step,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the session."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def _get(self, url: str, **kwargs) -> bytes:
        session = await self._get_session()

        async def attempt() -> bytes:
            status, body = await fetch(
                session,
                "GET",
                url,
                timeout=self.config.subtitle_timeout,
                headers=user_agent_headers(self.config.user_agent, accept=None),
                **kwargs,
            )
            check_status(status, body, url)
            return body

        return await self._retry.execute(attempt, description="subtitles")

    async def download_english(self, tmdb_id: int) -> Optional[str]:
        """SRT text of the first English subtitle, or None if there is none."""
        logger.info(f"Searching subtitles for TMDB ID: {tmdb_id}")
        body = await self._get(self.config.subtitle_search_url, params={"id": tmdb_id})
        listing = decode(WyzieListing, parse_json(body, "subtitles"), "subtitles").root

        english = next((s for s in listing if s.language == "en" and s.format == "srt"), None)
        if english is None:
            logger.info(f"No English subtitles for TMDB ID: {tmdb_id}")
            return None

        logger.info(f"Found English subtitle: {english.display or english.id}")
        content = (await self._get(english.url)).decode("utf-8", "replace")
        if not content.strip():
            raise DecodeError("subtitles", reason="empty subtitle file")
        return content

    async def actor_lines(self, tmdb_id: int, cast: Iterable[tuple[str, str]]) -> list[ActorLine]:
        """Download, parse and attribute subtitles; empty when none exist."""
        content = await self.download_english(tmdb_id)
        if content is None:
            return []
        return map_characters_to_actors(cast, parse_srt(content))
