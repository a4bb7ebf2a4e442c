"""Streaming parsers for Plex XML responses.

Each parser is a set of callbacks keyed by element name. Attributes are
collected into a builder while a record element is open; the builder becomes
a model only when that element closes. Missing optional attributes fall back
to defaults (``0`` for numbers, ``None`` for text). The whole parse fails only
when the ``MediaContainer`` envelope is missing or never closes.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..errors import ParseError
from ..models.plex import (
    Activity,
    ActivityList,
    CrewMember,
    MovieMetadata,
    MovieMetadataList,
    RatingEntry,
    Role,
    Session,
    SessionList,
    SessionPlayer,
    SessionUser,
    Tag,
    TranscodeSession,
    UltraBlurColors,
)

logger = logging.getLogger(__name__)

CONTAINER = "MediaContainer"

Attributes = dict[str, str]


def _int(attrs: Attributes, name: str, default: int = 0) -> int:
    raw = attrs.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        try:
            return int(float(raw))
        except ValueError:
            return default


def _optional_int(attrs: Attributes, name: str) -> Optional[int]:
    if not attrs.get(name):
        return None
    value = _int(attrs, name)
    return value or None


def _float(attrs: Attributes, name: str, default: float = 0.0) -> float:
    raw = attrs.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _bool(attrs: Attributes, name: str) -> bool:
    return attrs.get(name, "0").lower() in ("1", "true")


class XMLHandler:
    """Base class for element-keyed callbacks.

    Subclasses fill ``on_start`` and ``on_end`` with element name -> callback
    and set ``self.result`` when the envelope closes.
    """

    section = "response"

    def __init__(self) -> None:
        self.on_start: dict[str, Callable[[Attributes], None]] = {CONTAINER: self._start_container}
        self.on_end: dict[str, Callable[[], None]] = {CONTAINER: self._end_container}
        self.container_size = 0
        self.container_open = False
        self.result: Any = None

    def _start_container(self, attrs: Attributes) -> None:
        self.container_open = True
        self.container_size = _int(attrs, "size")

    def _end_container(self) -> None:
        self.container_open = False
        self.result = self.finish()

    def finish(self) -> Any:
        raise NotImplementedError

    def start(self, tag: str, attrs: Attributes) -> None:
        callback = self.on_start.get(tag)
        if callback is not None and (self.container_open or tag == CONTAINER):
            callback(attrs)

    def end(self, tag: str) -> None:
        callback = self.on_end.get(tag)
        if callback is not None and (self.container_open or tag == CONTAINER):
            callback()


def run_parser(handler: XMLHandler, data: bytes | str) -> Any:
    """Feed ``data`` through ``handler`` and return its result."""
    parser = ET.XMLPullParser(events=("start", "end"))

    def drain() -> None:
        for event, element in parser.read_events():
            if event == "start":
                handler.start(element.tag, dict(element.attrib))
            else:
                handler.end(element.tag)
                element.clear()

    try:
        parser.feed(data)
        drain()
        parser.close()
        drain()
    except ET.ParseError as e:
        logger.error(f"Malformed XML in {handler.section} response: {e}")
        raise ParseError(handler.section, reason=str(e)) from e

    if handler.result is None:
        logger.error(f"No {CONTAINER} found in {handler.section} response")
        raise ParseError(handler.section, field=CONTAINER, reason="envelope missing")
    return handler.result


# ---------------------------------------------------------------------------
# Sessions

@dataclass
class _SessionBuilder:
    kind: str
    attrs: Attributes
    user: Optional[SessionUser] = None
    player: Optional[SessionPlayer] = None
    transcode: Optional[TranscodeSession] = None

    def build(self) -> Optional[Session]:
        rating_key = self.attrs.get("ratingKey")
        if not rating_key:
            logger.warning(f"Skipping {self.kind} session without ratingKey")
            return None
        return Session(
            id=rating_key,
            kind=self.kind,
            session_key=self.attrs.get("sessionKey"),
            title=self.attrs.get("title"),
            year=_optional_int(self.attrs, "year"),
            duration=_int(self.attrs, "duration"),
            view_offset=_int(self.attrs, "viewOffset"),
            parent_title=self.attrs.get("parentTitle"),
            grandparent_title=self.attrs.get("grandparentTitle"),
            user=self.user,
            player=self.player,
            transcode=self.transcode,
        )


class SessionsHandler(XMLHandler):
    section = "sessions"

    def __init__(self) -> None:
        super().__init__()
        self.sessions: list[Session] = []
        self.current: Optional[_SessionBuilder] = None
        self.on_start.update({
            "Video": lambda attrs: self._start_session("video", attrs),
            "Track": lambda attrs: self._start_session("track", attrs),
            "User": self._start_user,
            "Player": self._start_player,
            "TranscodeSession": self._start_transcode,
        })
        self.on_end.update({
            "Video": self._end_session,
            "Track": self._end_session,
        })

    def _start_session(self, kind: str, attrs: Attributes) -> None:
        self.current = _SessionBuilder(kind=kind, attrs=attrs)

    def _start_user(self, attrs: Attributes) -> None:
        if self.current is None:
            return
        self.current.user = SessionUser(
            id=_int(attrs, "id"),
            title=attrs.get("title", ""),
            thumb=attrs.get("thumb"),
        )

    def _start_player(self, attrs: Attributes) -> None:
        if self.current is None:
            return
        self.current.player = SessionPlayer(
            address=attrs.get("address"),
            device=attrs.get("device"),
            platform=attrs.get("platform"),
            product=attrs.get("product"),
            state=attrs.get("state"),
            title=attrs.get("title"),
            version=attrs.get("version"),
        )

    def _start_transcode(self, attrs: Attributes) -> None:
        if self.current is None:
            return
        self.current.transcode = TranscodeSession(
            key=attrs.get("key"),
            progress=_float(attrs, "progress"),
            speed=_float(attrs, "speed"),
            duration=_int(attrs, "duration"),
            video_decision=attrs.get("videoDecision"),
            audio_decision=attrs.get("audioDecision"),
            container=attrs.get("container"),
            video_codec=attrs.get("videoCodec"),
            audio_codec=attrs.get("audioCodec"),
        )

    def _end_session(self) -> None:
        if self.current is None:
            return
        session = self.current.build()
        if session is not None:
            self.sessions.append(session)
        self.current = None

    def finish(self) -> SessionList:
        return SessionList(size=self.container_size, sessions=self.sessions)


def parse_sessions(data: bytes | str) -> SessionList:
    """Parse a /status/sessions response."""
    return run_parser(SessionsHandler(), data)


# ---------------------------------------------------------------------------
# Movie metadata

@dataclass
class _MovieBuilder:
    attrs: Attributes
    roles: list[Role] = field(default_factory=list)
    directors: list[CrewMember] = field(default_factory=list)
    writers: list[CrewMember] = field(default_factory=list)
    genres: list[Tag] = field(default_factory=list)
    countries: list[Tag] = field(default_factory=list)
    ratings: list[RatingEntry] = field(default_factory=list)
    guids: list[str] = field(default_factory=list)
    ultra_blur_colors: Optional[UltraBlurColors] = None

    def build(self) -> Optional[MovieMetadata]:
        rating_key = self.attrs.get("ratingKey")
        if not rating_key:
            logger.warning("Skipping metadata item without ratingKey")
            return None
        return MovieMetadata(
            id=rating_key,
            title=self.attrs.get("title"),
            year=_optional_int(self.attrs, "year"),
            studio=self.attrs.get("studio"),
            summary=self.attrs.get("summary"),
            rating=_float(self.attrs, "rating"),
            audience_rating=_float(self.attrs, "audienceRating"),
            audience_rating_image=self.attrs.get("audienceRatingImage"),
            content_rating=self.attrs.get("contentRating"),
            duration=_int(self.attrs, "duration"),
            tagline=self.attrs.get("tagline"),
            thumb=self.attrs.get("thumb"),
            art=self.attrs.get("art"),
            originally_available_at=self.attrs.get("originallyAvailableAt"),
            guid=self.attrs.get("guid"),
            roles=self.roles,
            directors=self.directors,
            writers=self.writers,
            genres=self.genres,
            countries=self.countries,
            ratings=self.ratings,
            guids=self.guids,
            ultra_blur_colors=self.ultra_blur_colors,
        )


def _crew(attrs: Attributes) -> CrewMember:
    return CrewMember(id=attrs.get("id", ""), tag=attrs.get("tag", ""), thumb=attrs.get("thumb"))


def _tag(attrs: Attributes) -> Tag:
    return Tag(id=attrs.get("id", ""), tag=attrs.get("tag", ""))


class MovieMetadataHandler(XMLHandler):
    section = "metadata"

    def __init__(self) -> None:
        super().__init__()
        self.items: list[MovieMetadata] = []
        # A fresh builder per item, so sub-lists never carry over between items.
        self.current: Optional[_MovieBuilder] = None
        self.on_start.update({
            "Video": self._start_item,
            "Directory": self._start_item,
            "Role": self._child(lambda b, a: b.roles.append(
                Role(id=a.get("id", ""), tag=a.get("tag", ""), role=a.get("role"), thumb=a.get("thumb"))
            )),
            "Director": self._child(lambda b, a: b.directors.append(_crew(a))),
            "Writer": self._child(lambda b, a: b.writers.append(_crew(a))),
            "Genre": self._child(lambda b, a: b.genres.append(_tag(a))),
            "Country": self._child(lambda b, a: b.countries.append(_tag(a))),
            "Rating": self._child(lambda b, a: b.ratings.append(RatingEntry(
                image=a.get("image"),
                type=a.get("type"),
                value=_float(a, "value"),
                count=_int(a, "count"),
            ))),
            "Guid": self._child(lambda b, a: b.guids.append(a["id"]) if a.get("id") else None),
            "UltraBlurColors": self._child(self._set_colors),
        })
        self.on_end.update({
            "Video": self._end_item,
            "Directory": self._end_item,
        })

    def _child(self, apply: Callable[[_MovieBuilder, Attributes], Any]) -> Callable[[Attributes], None]:
        def callback(attrs: Attributes) -> None:
            if self.current is not None:
                apply(self.current, attrs)
        return callback

    @staticmethod
    def _set_colors(builder: _MovieBuilder, attrs: Attributes) -> None:
        builder.ultra_blur_colors = UltraBlurColors(
            top_left=attrs.get("topLeft"),
            top_right=attrs.get("topRight"),
            bottom_left=attrs.get("bottomLeft"),
            bottom_right=attrs.get("bottomRight"),
        )

    def _start_item(self, attrs: Attributes) -> None:
        if self.current is None:
            self.current = _MovieBuilder(attrs=attrs)

    def _end_item(self) -> None:
        if self.current is None:
            return
        item = self.current.build()
        if item is not None:
            self.items.append(item)
        self.current = None

    def finish(self) -> MovieMetadataList:
        return MovieMetadataList(size=self.container_size, items=self.items)


def parse_movie_metadata(data: bytes | str) -> MovieMetadataList:
    """Parse a /library/metadata/{id} response."""
    return run_parser(MovieMetadataHandler(), data)


# ---------------------------------------------------------------------------
# Activities

class ActivitiesHandler(XMLHandler):
    section = "activities"

    def __init__(self) -> None:
        super().__init__()
        self.activities: list[Activity] = []
        self.current: Optional[Attributes] = None
        self.contexts: list[str] = []
        self.on_start.update({
            "Activity": self._start_activity,
            "Context": self._start_context,
        })
        self.on_end["Activity"] = self._end_activity

    def _start_activity(self, attrs: Attributes) -> None:
        self.current = attrs
        self.contexts = []

    def _start_context(self, attrs: Attributes) -> None:
        if self.current is not None and attrs.get("librarySectionID"):
            self.contexts.append(attrs["librarySectionID"])

    def _end_activity(self) -> None:
        if self.current is None:
            return
        attrs = self.current
        if attrs.get("uuid"):
            self.activities.append(Activity(
                id=attrs["uuid"],
                type=attrs.get("type"),
                cancellable=_bool(attrs, "cancellable"),
                user_id=_int(attrs, "userID"),
                title=attrs.get("title"),
                subtitle=attrs.get("subtitle"),
                progress=_int(attrs, "progress"),
                library_section_ids=self.contexts,
            ))
        else:
            logger.warning("Skipping activity without uuid")
        self.current = None
        self.contexts = []

    def finish(self) -> ActivityList:
        return ActivityList(size=self.container_size, activities=self.activities)


def parse_activities(data: bytes | str) -> ActivityList:
    """Parse an /activities response."""
    return run_parser(ActivitiesHandler(), data)
