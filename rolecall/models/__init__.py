"""Pydantic models for Plex, plex.tv and the filmography providers."""

from .auth import AuthSession, LoginState, LoginStatus, PinAuthorization
from .filmography import (
    CreditList,
    PersonCredit,
    PersonRecord,
    PersonSearchResult,
    PrecisionDate,
    TitleCastMember,
    TitleRecord,
)
from .plex import (
    Activity,
    ActivityList,
    MovieMetadata,
    ServerCapabilities,
    Session,
    SessionList,
)
from .subtitles import ActorLine, SubtitleEntry

__all__ = [
    "Activity",
    "ActivityList",
    "ActorLine",
    "AuthSession",
    "CreditList",
    "LoginState",
    "LoginStatus",
    "MovieMetadata",
    "PersonCredit",
    "PersonRecord",
    "PersonSearchResult",
    "PinAuthorization",
    "PrecisionDate",
    "ServerCapabilities",
    "Session",
    "SessionList",
    "SubtitleEntry",
    "TitleCastMember",
    "TitleRecord",
]
