import asyncio

import aiohttp
import pytest

from conftest import FakeResponse
from rolecall.config import RoleCallConfig, TransportOption
from rolecall.errors import (
    AuthorizationError,
    InvalidURLError,
    NotAuthenticatedError,
    ServerError,
    SupersededError,
    TransportError,
)
from rolecall.models.auth import AuthSession
from rolecall.retry import RetryController
from rolecall.settings_store import SETTINGS_KEY, MemorySettingsStore
from rolecall.tools.plex_client import PlexClient

HTTPS = "https://192.168.1.10:32400"
HTTP = "http://192.168.1.10:32400"

SESSIONS = b"""<MediaContainer size="1">
  <Video ratingKey="12345" title="It's A Wonderful Life" year="1946"
         duration="7800000" viewOffset="3600000" />
</MediaContainer>"""

NEWER_SESSIONS = b"""<MediaContainer size="1">
  <Video ratingKey="12345" title="It's A Wonderful Life" year="1946"
         duration="7800000" viewOffset="3700000" />
</MediaContainer>"""


def make_client(session, sleep, **config):
    auth = AuthSession(server_ip="192.168.1.10", token="secret-token")
    store = MemorySettingsStore()
    client = PlexClient(
        RoleCallConfig(**config),
        auth,
        store=store,
        session=session,
        retry=RetryController(max_attempts=3, sleep=sleep),
    )
    return client, store


def test_fetch_sessions_example(session, sleep):
    session.add(f"{HTTPS}/status/sessions", FakeResponse(200, SESSIONS))
    client, _ = make_client(session, sleep)

    result = asyncio.run(client.fetch_sessions())

    assert len(result.sessions) == 1
    s = result.sessions[0]
    assert (s.id, s.title, s.year, s.duration, s.view_offset) == (
        "12345", "It's A Wonderful Life", 1946, 7800000, 3600000,
    )
    assert client.sessions is result


def test_token_sent_as_query_parameter(session, sleep):
    session.add(f"{HTTPS}/status/sessions", FakeResponse(200, SESSIONS))
    client, _ = make_client(session, sleep)
    asyncio.run(client.fetch_sessions())

    method, url, kwargs = session.requests[0]
    assert method == "GET"
    assert "secret-token" not in url
    assert kwargs["params"]["X-Plex-Token"] == "secret-token"
    assert kwargs["headers"]["Accept"] == "application/xml"


def test_falls_back_to_second_transport(session, sleep):
    session.add(f"{HTTPS}/status/sessions", aiohttp.ClientConnectionError("refused"))
    session.add(f"{HTTP}/status/sessions", FakeResponse(200, SESSIONS))
    client, _ = make_client(session, sleep)

    result = asyncio.run(client.fetch_sessions())

    assert result.sessions[0].id == "12345"
    assert session.urls() == [f"{HTTPS}/status/sessions", f"{HTTP}/status/sessions"]
    assert sleep.delays == []


def test_unauthorized_stops_before_next_transport(session, sleep):
    session.add(f"{HTTPS}/status/sessions", FakeResponse(401, b"Unauthorized"))
    session.add(f"{HTTP}/status/sessions", FakeResponse(200, SESSIONS))
    client, store = make_client(session, sleep)

    with pytest.raises(AuthorizationError):
        asyncio.run(client.fetch_sessions())

    assert session.urls() == [f"{HTTPS}/status/sessions"]
    assert client.auth.token == ""
    assert client.auth.server_ip == "192.168.1.10"
    assert store.get(SETTINGS_KEY)["token"] == ""


def test_metadata_unauthorized_stops_before_next_transport(session, sleep):
    session.add(f"{HTTPS}/library/metadata/12345", FakeResponse(401, b"Unauthorized"))
    session.add(f"{HTTP}/library/metadata/12345", FakeResponse(200, SESSIONS))
    client, store = make_client(session, sleep)

    with pytest.raises(AuthorizationError):
        asyncio.run(client.fetch_movie_metadata("12345"))

    assert session.urls() == [f"{HTTPS}/library/metadata/12345"]
    assert sleep.delays == []
    assert store.get(SETTINGS_KEY)["token"] == ""


def test_all_transports_failing_raises_last_error(session, sleep):
    session.add(f"{HTTPS}/status/sessions", aiohttp.ClientConnectionError("refused"))
    session.add(f"{HTTP}/status/sessions", FakeResponse(500, b"boom"))
    client, _ = make_client(session, sleep)

    with pytest.raises(ServerError) as info:
        asyncio.run(client.fetch_sessions())

    assert info.value.status == 500
    assert len(session.requests) == 2


def test_transport_failures_are_retried(session, sleep):
    session.add("/status/sessions", aiohttp.ClientConnectionError("refused"))
    client, _ = make_client(session, sleep)

    with pytest.raises(TransportError):
        asyncio.run(client.fetch_sessions())

    assert len(session.requests) == 6
    assert sleep.delays == [2.0, 3.0]


def test_malformed_url_is_not_retried(session, sleep):
    session.add("/status/sessions", aiohttp.InvalidURL(f"{HTTPS}/status/sessions"))
    client, _ = make_client(session, sleep)

    with pytest.raises(InvalidURLError):
        asyncio.run(client.fetch_sessions())

    assert session.urls() == [f"{HTTPS}/status/sessions", f"{HTTP}/status/sessions"]
    assert sleep.delays == []


def test_insecure_fallback_can_be_disabled(session, sleep):
    session.add(f"{HTTPS}/status/sessions", aiohttp.ClientConnectionError("refused"))
    session.add(f"{HTTP}/status/sessions", FakeResponse(200, SESSIONS))
    client, _ = make_client(session, sleep, allow_insecure_fallback=False)
    client._retry = RetryController(max_attempts=1, sleep=sleep)

    with pytest.raises(TransportError):
        asyncio.run(client.fetch_sessions())

    assert session.urls(HTTP + "/") == []


def test_custom_transport_order(session, sleep):
    session.add(f"{HTTP}/status/sessions", FakeResponse(200, SESSIONS))
    client, _ = make_client(
        session, sleep,
        plex_transports=[TransportOption(scheme="http", timeout=5), TransportOption(scheme="https")],
    )
    asyncio.run(client.fetch_sessions())
    assert session.urls() == [f"{HTTP}/status/sessions"]


def test_failure_keeps_last_snapshot(session, sleep):
    session.add(f"{HTTPS}/status/sessions", FakeResponse(200, SESSIONS), FakeResponse(500, b""))
    session.add(f"{HTTP}/status/sessions", FakeResponse(500, b""))
    client, _ = make_client(session, sleep)

    first = asyncio.run(client.fetch_sessions())
    with pytest.raises(ServerError):
        asyncio.run(client.fetch_sessions())

    assert client.sessions is first


def test_requires_login(session, sleep):
    client, _ = make_client(session, sleep)
    client.auth.token = ""
    with pytest.raises(NotAuthenticatedError):
        asyncio.run(client.fetch_sessions())
    assert session.requests == []


def test_newer_fetch_supersedes_older(session, sleep):
    client, _ = make_client(session, sleep)

    async def scenario():
        blocker = asyncio.Event()
        session.add(
            f"{HTTPS}/status/sessions",
            FakeResponse(200, SESSIONS, gate=blocker),
            FakeResponse(200, NEWER_SESSIONS),
        )
        older = asyncio.ensure_future(client.fetch_sessions())
        for _ in range(5):
            await asyncio.sleep(0)
        newer = await client.fetch_sessions()
        blocker.set()
        with pytest.raises(SupersededError):
            await older
        return newer

    newer = asyncio.run(scenario())
    assert newer.sessions[0].view_offset == 3700000
    assert client.sessions is newer


def test_movie_metadata_requests_guids(session, sleep):
    session.add(
        f"{HTTPS}/library/metadata/12345",
        FakeResponse(200, b'<MediaContainer size="1"><Video ratingKey="12345" title="x">'
                          b'<Guid id="imdb://tt0038650" /></Video></MediaContainer>'),
    )
    client, _ = make_client(session, sleep)

    item = asyncio.run(client.fetch_movie_metadata("12345"))

    assert item.imdb_id == "tt0038650"
    assert session.requests[0][2]["params"]["includeGuids"] == 1
    assert client.movie_metadata is item


def test_empty_metadata_is_none(session, sleep):
    session.add(f"{HTTPS}/library/metadata/1", FakeResponse(200, b'<MediaContainer size="0" />'))
    client, _ = make_client(session, sleep)
    assert asyncio.run(client.fetch_movie_metadata("1")) is None


def test_server_capabilities_from_json(session, sleep):
    session.add(f"{HTTPS}/", FakeResponse(200, {
        "MediaContainer": {
            "friendlyName": "Bedford Falls",
            "version": "1.40.0",
            "myPlexUsername": "george",
            "transcoderVideo": True,
            "Directory": [{"key": "library", "title": "library", "count": 1}],
        }
    }))
    client, _ = make_client(session, sleep)

    caps = asyncio.run(client.fetch_server_capabilities())

    assert caps.friendlyName == "Bedford Falls"
    assert caps.directories[0].key == "library"
    assert session.requests[0][2]["headers"]["Accept"] == "application/json"


def test_validate_token(session, sleep):
    session.add(f"{HTTPS}/", FakeResponse(401, b""))
    client, _ = make_client(session, sleep)
    assert asyncio.run(client.validate_token()) is False
    assert client.auth.token == ""


def test_validate_token_keeps_token_when_unreachable(session, sleep):
    session.add("/", FakeResponse(503, b""))
    client, _ = make_client(session, sleep)
    assert asyncio.run(client.validate_token()) is True
    assert client.auth.token == "secret-token"


def test_logout_clears_snapshots(session, sleep):
    session.add(f"{HTTPS}/status/sessions", FakeResponse(200, SESSIONS))
    client, store = make_client(session, sleep)
    asyncio.run(client.fetch_sessions())

    client.logout()

    assert client.sessions is None
    assert client.auth.token == ""
    assert store.get(SETTINGS_KEY)["server_ip"] == "192.168.1.10"


def test_server_address_with_port_and_scheme(session, sleep):
    session.add("http://plex.local:32401/activities", FakeResponse(200, b'<MediaContainer size="0" />'))
    session.add("https://plex.local:32401/activities", aiohttp.ClientConnectionError("refused"))
    client, _ = make_client(session, sleep)
    client.update_server("http://plex.local:32401/")

    asyncio.run(client.fetch_activities())

    assert session.urls() == [
        "https://plex.local:32401/activities",
        "http://plex.local:32401/activities",
    ]


def test_server_address_without_host(session, sleep):
    client, _ = make_client(session, sleep)
    client.update_server("https://")
    with pytest.raises(InvalidURLError):
        asyncio.run(client.fetch_sessions())
    assert session.requests == []


def test_ipv6_server_address_is_bracketed(session, sleep):
    session.add("https://[::1]:32400/activities", FakeResponse(200, b'<MediaContainer size="0" />'))
    client, _ = make_client(session, sleep)

    client.update_server("::1")
    asyncio.run(client.fetch_activities())
    client.update_server("[fe80::2]:32401")
    session.add("https://[fe80::2]:32401/activities", FakeResponse(200, b'<MediaContainer size="0" />'))
    asyncio.run(client.fetch_activities())

    assert session.urls() == [
        "https://[::1]:32400/activities",
        "https://[fe80::2]:32401/activities",
    ]
