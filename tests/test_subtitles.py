import asyncio

import pytest

from conftest import FakeResponse
from rolecall.config import RoleCallConfig
from rolecall.errors import DecodeError
from rolecall.models.subtitles import ActorLine, SubtitleEntry
from rolecall.retry import RetryController
from rolecall.tools.subtitles import (
    SubtitleClient,
    actors_in_scene,
    map_characters_to_actors,
    parse_srt,
)

SRT = """1
00:00:01,000 --> 00:00:04,500
George Bailey, I'll love you till the day I die.

2
00:00:05,000 --> 00:00:07,250
Merry Christmas, Mary!
Merry Christmas, George!

3
00:01:02,100 --> 00:01:03,000
Strange, isn't it?
"""

CAST = [
    ("George Bailey", "James Stewart"),
    ("Mary Hatch", "Donna Reed"),
    ("Clarence", "Henry Travers"),
]


def test_parse_srt():
    entries = parse_srt(SRT)

    assert len(entries) == 3
    assert entries[0].start == 1.0
    assert entries[0].end == 4.5
    assert entries[1].text == "Merry Christmas, Mary!\nMerry Christmas, George!"
    assert entries[2].start == pytest.approx(62.1)


def test_parse_srt_handles_crlf_and_junk_blocks():
    text = "\ufeff1\r\n00:00:01,000 --> 00:00:02,000\r\nHello\r\n\r\nnot a cue\r\n\r\n"
    entries = parse_srt(text)
    assert [e.text for e in entries] == ["Hello"]


def test_full_name_matched_before_first_name():
    lines = map_characters_to_actors(CAST, parse_srt(SRT))

    first_cue = [l for l in lines if l.start == 1.0]
    assert [(l.character, l.actor) for l in first_cue] == [("George Bailey", "James Stewart")]


def test_first_names_match_on_word_boundaries():
    entries = [
        SubtitleEntry(start=0, end=1, text="Merry Christmas, Mary! Merry Christmas, George!"),
        SubtitleEntry(start=2, end=3, text="Georgette and Maryland"),
    ]
    lines = map_characters_to_actors(CAST, entries)

    assert [(l.character, l.actor) for l in lines] == [
        ("Mary Hatch", "Donna Reed"),
        ("George Bailey", "James Stewart"),
    ]


def test_first_name_alias_does_not_override_full_name():
    cast = [("Harry Bailey", "Todd Karns"), ("Harry", "Someone Else")]
    lines = map_characters_to_actors(cast, [SubtitleEntry(start=0, end=1, text="Harry!")])
    assert [(l.character, l.actor) for l in lines] == [("Harry", "Someone Else")]


def test_characters_without_names_are_ignored():
    lines = map_characters_to_actors([("", "Nobody"), ("  ", "Blank")], parse_srt(SRT))
    assert lines == []


def test_actors_in_scene_deduplicates():
    lines = [
        ActorLine(start=0, end=10, character="George Bailey", actor="James Stewart", line="a"),
        ActorLine(start=5, end=8, character="George Bailey", actor="James Stewart", line="b"),
        ActorLine(start=6, end=9, character="Mary Hatch", actor="Donna Reed", line="c"),
        ActorLine(start=20, end=30, character="Clarence", actor="Henry Travers", line="d"),
    ]
    assert actors_in_scene(7, lines) == [
        ("George Bailey", "James Stewart"),
        ("Mary Hatch", "Donna Reed"),
    ]
    assert actors_in_scene(10, lines) == [("George Bailey", "James Stewart")]
    assert actors_in_scene(15, lines) == []


def make_client(session, sleep):
    return SubtitleClient(RoleCallConfig(), session=session, retry=RetryController(sleep=sleep))


def test_download_english(session, sleep):
    session.add("https://sub.wyzie.ru/search", FakeResponse(200, [
        {"id": "1", "url": "https://sub.wyzie.ru/c/fr.srt", "language": "fr", "format": "srt"},
        {"id": "2", "url": "https://sub.wyzie.ru/c/en.ass", "language": "en", "format": "ass"},
        {"id": "3", "url": "https://sub.wyzie.ru/c/en.srt", "language": "en", "format": "srt", "display": "English"},
    ]))
    session.add("https://sub.wyzie.ru/c/en.srt", FakeResponse(200, SRT))

    content = asyncio.run(make_client(session, sleep).download_english(1585))

    assert content == SRT
    assert session.requests[0][2]["params"] == {"id": 1585}
    assert session.urls()[-1] == "https://sub.wyzie.ru/c/en.srt"


def test_no_english_subtitles(session, sleep):
    session.add("https://sub.wyzie.ru/search", FakeResponse(200, [
        {"url": "https://sub.wyzie.ru/c/de.srt", "language": "de", "format": "srt"},
    ]))
    client = make_client(session, sleep)

    assert asyncio.run(client.download_english(1585)) is None
    assert asyncio.run(client.actor_lines(1585, CAST)) == []
    assert len(session.urls("/c/")) == 0


def test_empty_subtitle_file(session, sleep):
    session.add("https://sub.wyzie.ru/search", FakeResponse(200, [
        {"url": "https://sub.wyzie.ru/c/en.srt", "language": "en", "format": "srt"},
    ]))
    session.add("https://sub.wyzie.ru/c/en.srt", FakeResponse(200, b"  \n"))

    with pytest.raises(DecodeError):
        asyncio.run(make_client(session, sleep).download_english(1585))


def test_actor_lines(session, sleep):
    session.add("https://sub.wyzie.ru/search", FakeResponse(200, [
        {"url": "https://sub.wyzie.ru/c/en.srt", "language": "en", "format": "srt"},
    ]))
    session.add("https://sub.wyzie.ru/c/en.srt", FakeResponse(200, SRT))

    lines = asyncio.run(make_client(session, sleep).actor_lines(1585, CAST))

    assert actors_in_scene(6.0, lines) == [
        ("Mary Hatch", "Donna Reed"),
        ("George Bailey", "James Stewart"),
    ]
