"""Pydantic models for Plex Media Server responses."""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class SessionUser(BaseModel):
    """The account watching a session."""
    id: int = 0
    title: str = ""
    thumb: Optional[str] = None


class SessionPlayer(BaseModel):
    """The device playing a session."""
    address: Optional[str] = None
    device: Optional[str] = None
    platform: Optional[str] = None
    product: Optional[str] = None
    state: Optional[str] = None  # "playing", "paused", "buffering"
    title: Optional[str] = None
    version: Optional[str] = None


class TranscodeSession(BaseModel):
    """Transcoder state attached to a session, if any."""
    key: Optional[str] = None
    progress: float = 0.0
    speed: float = 0.0
    duration: int = 0
    video_decision: Optional[str] = None
    audio_decision: Optional[str] = None
    container: Optional[str] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None

    @property
    def is_transcoding(self) -> bool:
        return "transcode" in (self.video_decision, self.audio_decision)


class Session(BaseModel):
    """A currently playing item reported by /status/sessions."""
    id: str  # ratingKey
    kind: Literal["video", "track"] = "video"
    session_key: Optional[str] = None
    title: Optional[str] = None
    year: Optional[int] = None
    duration: int = 0  # milliseconds
    view_offset: int = 0  # milliseconds
    parent_title: Optional[str] = None  # album, for tracks
    grandparent_title: Optional[str] = None  # artist, for tracks
    user: Optional[SessionUser] = None
    player: Optional[SessionPlayer] = None
    transcode: Optional[TranscodeSession] = None

    @property
    def progress(self) -> float:
        """Playback position as a fraction of the duration."""
        if self.duration <= 0:
            return 0.0
        return min(self.view_offset / self.duration, 1.0)


class SessionList(BaseModel):
    """Parsed /status/sessions response."""
    size: int = 0
    sessions: list[Session] = Field(default_factory=list)

    @property
    def videos(self) -> list[Session]:
        return [s for s in self.sessions if s.kind == "video"]

    @property
    def tracks(self) -> list[Session]:
        return [s for s in self.sessions if s.kind == "track"]


class Role(BaseModel):
    """A cast member of a movie."""
    id: str = ""
    tag: str = ""  # actor name
    role: Optional[str] = None  # character name
    thumb: Optional[str] = None


class CrewMember(BaseModel):
    """A director or writer credit."""
    id: str = ""
    tag: str = ""
    thumb: Optional[str] = None


class Tag(BaseModel):
    """A genre or country tag."""
    id: str = ""
    tag: str = ""


class RatingEntry(BaseModel):
    """One rating value, tagged by its source (e.g. ``imdb://image.rating``)."""
    image: Optional[str] = None
    type: Optional[str] = None  # "critic" or "audience"
    value: float = 0.0
    count: int = 0

    @property
    def source(self) -> str:
        if not self.image:
            return "unknown"
        return self.image.split("://", 1)[0]


class UltraBlurColors(BaseModel):
    """Theme color swatches, as hex strings without a leading '#'."""
    top_left: Optional[str] = None
    top_right: Optional[str] = None
    bottom_left: Optional[str] = None
    bottom_right: Optional[str] = None


def _guid_value(guid: str, provider: str) -> Optional[str]:
    # Plex uses "imdb://tt0111161" and the legacy
    # "com.plexapp.agents.imdb://tt0111161?lang=en" forms.
    marker = f"{provider}://"
    if marker not in guid:
        return None
    value = guid.split(marker, 1)[1].split("?", 1)[0]
    return value or None


class MovieMetadata(BaseModel):
    """A single title from /library/metadata/{id}."""
    id: str  # ratingKey
    title: Optional[str] = None
    year: Optional[int] = None
    studio: Optional[str] = None
    summary: Optional[str] = None
    rating: float = 0.0
    audience_rating: float = 0.0
    audience_rating_image: Optional[str] = None
    content_rating: Optional[str] = None
    duration: int = 0
    tagline: Optional[str] = None
    thumb: Optional[str] = None
    art: Optional[str] = None
    originally_available_at: Optional[str] = None
    guid: Optional[str] = None

    roles: list[Role] = Field(default_factory=list)
    directors: list[CrewMember] = Field(default_factory=list)
    writers: list[CrewMember] = Field(default_factory=list)
    genres: list[Tag] = Field(default_factory=list)
    countries: list[Tag] = Field(default_factory=list)
    ratings: list[RatingEntry] = Field(default_factory=list)
    guids: list[str] = Field(default_factory=list)  # e.g. "imdb://tt0038650"
    ultra_blur_colors: Optional[UltraBlurColors] = None

    def external_id(self, provider: str) -> Optional[str]:
        """Return the id for ``provider`` ("imdb", "tmdb", "tvdb") if known."""
        for guid in [self.guid, *self.guids]:
            if guid:
                value = _guid_value(guid, provider)
                if value:
                    return value
        return None

    @property
    def imdb_id(self) -> Optional[str]:
        return self.external_id("imdb")

    @property
    def tmdb_id(self) -> Optional[int]:
        value = self.external_id("tmdb")
        if value and value.isdigit():
            return int(value)
        return None

    @property
    def cast_mapping(self) -> list[tuple[str, str]]:
        """(character, actor) pairs for roles that name a character."""
        return [(r.role, r.tag) for r in self.roles if r.role]


class MovieMetadataList(BaseModel):
    """Parsed /library/metadata response."""
    size: int = 0
    items: list[MovieMetadata] = Field(default_factory=list)

    @property
    def first(self) -> Optional[MovieMetadata]:
        return self.items[0] if self.items else None


class Activity(BaseModel):
    """A background task running on the server (library scan, optimize...)."""
    id: str  # uuid
    type: Optional[str] = None
    cancellable: bool = False
    user_id: int = 0
    title: Optional[str] = None
    subtitle: Optional[str] = None
    progress: int = 0
    library_section_ids: list[str] = Field(default_factory=list)


class ActivityList(BaseModel):
    """Parsed /activities response."""
    size: int = 0
    activities: list[Activity] = Field(default_factory=list)


class ServerDirectory(BaseModel):
    """A top-level directory advertised by the server root."""
    model_config = ConfigDict(extra="ignore")

    count: Optional[int] = None
    key: Optional[str] = None
    title: Optional[str] = None


class ServerCapabilities(BaseModel):
    """The MediaContainer returned by the server root."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    size: Optional[int] = None
    friendlyName: Optional[str] = None
    machineIdentifier: Optional[str] = None
    version: Optional[str] = None
    platform: Optional[str] = None
    platformVersion: Optional[str] = None
    myPlex: Optional[bool] = None
    myPlexUsername: Optional[str] = None
    myPlexSubscription: Optional[bool] = None
    multiuser: Optional[bool] = None
    allowSync: Optional[bool] = None
    transcoderVideo: Optional[bool] = None
    transcoderAudio: Optional[bool] = None
    transcoderActiveVideoSessions: Optional[int] = None
    updatedAt: Optional[int] = None
    directories: list[ServerDirectory] = Field(default_factory=list, alias="Directory")
