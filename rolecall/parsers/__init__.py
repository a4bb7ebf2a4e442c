"""Parsers turning Plex XML and provider JSON into typed records."""

from .common import decode
from .plex_xml import parse_activities, parse_movie_metadata, parse_sessions

__all__ = [
    "decode",
    "parse_activities",
    "parse_movie_metadata",
    "parse_sessions",
]
