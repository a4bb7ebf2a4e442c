import pytest

from rolecall.errors import ParseError
from rolecall.parsers import parse_activities, parse_movie_metadata, parse_sessions

SESSIONS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<MediaContainer size="2">
  <Video ratingKey="12345" sessionKey="7" title="It's A Wonderful Life" year="1946"
         duration="7800000" viewOffset="3600000" type="movie">
    <Genre tag="Drama" />
    <User id="1" title="george" thumb="/users/1.png" />
    <Player address="10.0.0.5" device="Apple TV" platform="tvOS" product="Plex for Apple TV"
            state="playing" title="Living Room" />
    <TranscodeSession key="/transcode/sessions/abc" progress="12.5" speed="1.8"
                      videoDecision="transcode" audioDecision="copy" />
  </Video>
  <Track ratingKey="999" title="Buffalo Gals" parentTitle="Soundtrack" grandparentTitle="Various"
         duration="180000" viewOffset="0">
    <User id="2" title="mary" />
  </Track>
</MediaContainer>
"""

METADATA_XML = b"""<MediaContainer size="1">
  <Video ratingKey="12345" title="It's A Wonderful Life" year="1946" studio="Liberty Films"
         rating="9.4" audienceRating="8.6" duration="7800000" guid="plex://movie/5d7768"
         contentRating="PG">
    <Genre id="1" tag="Drama" />
    <Genre id="2" tag="Family" />
    <Country tag="United States of America" />
    <Director id="10" tag="Frank Capra" />
    <Writer id="11" tag="Frances Goodrich" />
    <Writer id="12" tag="Albert Hackett" />
    <Role id="20" tag="James Stewart" role="George Bailey" thumb="/t/20.jpg" />
    <Role id="21" tag="Donna Reed" role="Mary Hatch" />
    <Role id="22" tag="Uncredited Extra" />
    <Guid id="imdb://tt0038650" />
    <Guid id="tmdb://1585" />
    <Rating image="imdb://image.rating" value="8.6" type="audience" />
    <UltraBlurColors topLeft="2c2c2c" topRight="3d3d3d" bottomLeft="1a1a1a" bottomRight="0f0f0f" />
  </Video>
</MediaContainer>
"""


def test_example_session_fields():
    result = parse_sessions(SESSIONS_XML)

    assert result.size == 2
    video = result.videos[0]
    assert video.id == "12345"
    assert video.title == "It's A Wonderful Life"
    assert video.year == 1946
    assert video.duration == 7800000
    assert video.view_offset == 3600000
    assert video.session_key == "7"
    assert video.user.title == "george"
    assert video.player.state == "playing"
    assert video.transcode.is_transcoding
    assert video.progress == pytest.approx(3600000 / 7800000)


def test_tracks_are_sessions_too():
    track = parse_sessions(SESSIONS_XML).tracks[0]
    assert track.id == "999"
    assert track.kind == "track"
    assert track.parent_title == "Soundtrack"
    assert track.grandparent_title == "Various"
    assert track.user.title == "mary"
    assert track.player is None


def test_empty_container_is_an_empty_list():
    result = parse_sessions(b'<MediaContainer size="0"></MediaContainer>')
    assert result.size == 0
    assert result.sessions == []


def test_missing_optional_attributes_use_defaults():
    result = parse_sessions(b'<MediaContainer><Video ratingKey="1" year="" duration="abc" /></MediaContainer>')
    session = result.sessions[0]
    assert session.title is None
    assert session.year is None
    assert session.duration == 0
    assert session.view_offset == 0
    assert session.progress == 0.0


def test_records_without_rating_key_are_skipped():
    result = parse_sessions(b'<MediaContainer size="2"><Video title="x" /><Video ratingKey="2" /></MediaContainer>')
    assert [s.id for s in result.sessions] == ["2"]


def test_missing_envelope_is_a_parse_error():
    with pytest.raises(ParseError) as info:
        parse_sessions(b'<Response><Video ratingKey="1" /></Response>')
    assert info.value.field == "MediaContainer"
    assert info.value.endpoint == "sessions"


def test_unclosed_envelope_is_a_parse_error():
    with pytest.raises(ParseError):
        parse_sessions(b'<MediaContainer size="1"><Video ratingKey="1">')


def test_records_outside_the_envelope_are_ignored():
    result = parse_sessions(b'<Wrapper><Video ratingKey="9" /><MediaContainer size="0" /></Wrapper>')
    assert result.sessions == []


def test_metadata_sub_lists():
    item = parse_movie_metadata(METADATA_XML).first

    assert item.id == "12345"
    assert item.studio == "Liberty Films"
    assert item.rating == 9.4
    assert [g.tag for g in item.genres] == ["Drama", "Family"]
    assert [d.tag for d in item.directors] == ["Frank Capra"]
    assert [w.tag for w in item.writers] == ["Frances Goodrich", "Albert Hackett"]
    assert [c.tag for c in item.countries] == ["United States of America"]
    assert item.roles[0].role == "George Bailey"
    assert item.ratings[0].source == "imdb"
    assert item.ultra_blur_colors.top_left == "2c2c2c"


def test_metadata_external_ids():
    item = parse_movie_metadata(METADATA_XML).first
    assert item.imdb_id == "tt0038650"
    assert item.tmdb_id == 1585
    assert item.cast_mapping == [("George Bailey", "James Stewart"), ("Mary Hatch", "Donna Reed")]


def test_metadata_items_do_not_share_children():
    xml = b"""<MediaContainer size="2">
      <Video ratingKey="1"><Role tag="A" role="Alpha" /></Video>
      <Video ratingKey="2"><Role tag="B" role="Beta" /></Video>
    </MediaContainer>"""
    items = parse_movie_metadata(xml).items
    assert [r.tag for r in items[0].roles] == ["A"]
    assert [r.tag for r in items[1].roles] == ["B"]


def test_empty_metadata_has_no_first_item():
    assert parse_movie_metadata(b'<MediaContainer size="0" />').first is None


def test_activities():
    xml = b"""<MediaContainer size="1">
      <Activity uuid="a1b2" type="library.update.section" cancellable="1" userID="1"
                title="Scanning Movies" subtitle="It's A Wonderful Life" progress="42">
        <Context librarySectionID="3" />
      </Activity>
      <Activity type="orphan" />
    </MediaContainer>"""
    result = parse_activities(xml)
    assert len(result.activities) == 1
    activity = result.activities[0]
    assert activity.id == "a1b2"
    assert activity.cancellable is True
    assert activity.progress == 42
    assert activity.library_section_ids == ["3"]
