import asyncio

import httpx

from herbst.feed_state import FeedKind, FeedState
from herbst.session import dashboard_session
from herbst.theme import InlineStyleRoot
from tests.fakes import FakeChannel, event, mock_client


def backend(config_payload, health=None):
    health = health or {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/config":
            return httpx.Response(200, json=config_payload)
        if request.url.path == "/api/health":
            return httpx.Response(200, json={"online": health.get(request.url.params["url"], False)})
        return httpx.Response(404)

    return handler


def test_session_themes_resolves_icons_and_streams(full_payload, container_c1):
    root = InlineStyleRoot()
    full_payload["weather"]["enabled"] = False
    full_payload["system"]["enabled"] = False
    docker_channel = FakeChannel(events=[event("docker", {"containers": [container_c1]})], block=True)

    async def scenario():
        async with mock_client(backend(full_payload, {"https://ha.local": True})) as client:
            async with dashboard_session(
                client,
                root,
                channel_factory=lambda kind: docker_channel,
                check_badges=True,
            ) as session:
                for _ in range(100):
                    if session.live.status(FeedKind.DOCKER).state == FeedState.STREAMING:
                        break
                    await asyncio.sleep(0)
                inside = session.live.snapshot()
                themed = dict(root.properties)
            return session, inside, themed

    session, inside, themed = asyncio.run(scenario())

    assert session.notice is None
    assert themed["--color-bg"] == "#0b1120"
    assert [s.title for s in session.sections] == ["Home", "Services"]
    assert session.icons == [{"Home Assistant": None, "NAS": None}, {"Plex": None}]
    assert session.online == [{"Home Assistant": True}, {}]
    assert root.properties == {}
    assert set(inside.containers) == {"c1"}
    assert inside.weather is None
    assert session.live.status(FeedKind.DOCKER).state == FeedState.DISCONNECTED


def test_session_falls_back_to_defaults_when_server_down():
    root = InlineStyleRoot()

    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async def scenario():
        async with mock_client(handler) as client:
            async with dashboard_session(client, root) as session:
                return session

    session = asyncio.run(scenario())

    assert session.notice is not None
    assert session.config.title == "herbst"
    assert session.sections == []
    assert root.properties == {}
    for kind in FeedKind:
        assert session.live.status(kind).state == FeedState.DISCONNECTED


def test_theme_switch_across_sessions_on_shared_root():
    root = InlineStyleRoot()
    payloads = iter([
        {"title": "t", "theme": "first", "themeVars": {"a": "1", "b": "2"}},
        {"title": "t", "theme": "second", "themeVars": {"a": "1"}},
    ])

    def handler(request):
        return httpx.Response(200, json=next(payloads))

    async def scenario():
        seen = []
        async with mock_client(handler) as client:
            for _ in range(2):
                async with dashboard_session(client, root, channel_factory=lambda kind: FakeChannel(block=True)):
                    seen.append(dict(root.properties))
        return seen

    seen = asyncio.run(scenario())

    assert seen == [{"--a": "1", "--b": "2"}, {"--a": "1"}]
    assert root.properties == {}


def test_same_service_name_in_two_sections():
    payload = {
        "title": "t",
        "theme": "x",
        "sections": [
            {"title": "A", "services": [{"name": "NAS", "url": "https://a", "icon": "a.png", "onlineBadge": True}]},
            {"title": "B", "services": [{"name": "NAS", "url": "https://b", "icon": "b.png", "onlineBadge": True}]},
        ],
    }

    async def scenario():
        async with mock_client(backend(payload, {"https://a": True})) as client:
            async with dashboard_session(
                client,
                InlineStyleRoot(),
                channel_factory=lambda kind: FakeChannel(block=True),
                check_badges=True,
            ) as session:
                return session

    session = asyncio.run(scenario())

    assert session.icons == [{"NAS": "a.png"}, {"NAS": "b.png"}]
    assert session.online == [{"NAS": True}, {"NAS": False}]


def test_online_badges_are_checked_concurrently():
    payload = {
        "title": "t",
        "theme": "x",
        "services": [
            {"name": f"svc{i}", "url": f"https://svc{i}", "onlineBadge": True} for i in range(3)
        ],
    }
    in_flight = 0
    peak = 0

    async def handler(request):
        nonlocal in_flight, peak
        if request.url.path == "/api/config":
            return httpx.Response(200, json=payload)
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return httpx.Response(200, json={"online": True})

    async def scenario():
        async with mock_client(handler) as client:
            async with dashboard_session(
                client,
                InlineStyleRoot(),
                channel_factory=lambda kind: FakeChannel(block=True),
                check_badges=True,
            ) as session:
                return session

    session = asyncio.run(scenario())

    assert session.online == [{"svc0": True, "svc1": True, "svc2": True}]
    assert peak == 3
