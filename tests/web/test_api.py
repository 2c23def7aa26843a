import sys
import types
from pathlib import Path

import pytest
import requests
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from giftplanner.resolver import (  # noqa: E402
    STATUS_INVALID_LINK,
    Resolution,
    ResolutionState,
    ResolvedRecord,
)


class FakeCatalog:
    async def list_gifts(self):
        return ["Instant Ramen", "Santa Hat"]


class FakeResolver:
    def __init__(self):
        self.catalog = FakeCatalog()
        self.links = []

    async def resolve_link(self, link):
        self.links.append(link)
        if "t.me/nft/" not in link:
            return Resolution(ResolutionState.IDLE, STATUS_INVALID_LINK)
        record = ResolvedRecord(
            gift="Instant Ramen",
            model="Spicy Miso",
            backdrop={"name": "Black", "hex": {"edgeColor": "#000", "centerColor": "#111"}},
            pattern="Chopsticks",
            total_issued=98765,
        )
        return Resolution(
            ResolutionState.RESOLVED,
            "Found model: Spicy Miso",
            record,
            models=[{"name": "Spicy Miso", "rarityPermille": 12}],
        )

    async def resolve_name(self, name):
        return Resolution(
            ResolutionState.RESOLVED,
            "Base gift (no upgrades)",
            ResolvedRecord(gift=name),
            gift_id="6008131131440037007",
        )


class FakeAnimations:
    def __init__(self):
        self.calls = []

    async def load(self, gift, model=None, gift_id=None):
        self.calls.append((gift, model, gift_id))
        if model == "Spicy Miso":
            return {"v": "5.5.2", "fr": 60, "layers": []}
        return None


@pytest.fixture
def api_client():
    import server

    with TestClient(server.app) as client:
        assert server.app.state.resolver is not None
        server.app.state.animations = FakeAnimations()
        server.app.state.resolver = FakeResolver()
        yield client, server


def test_resolve_link(api_client):
    client, _ = api_client
    res = client.get("/api/resolve", params={"link": "https://t.me/nft/InstantRamen-42"})
    assert res.status_code == 200, res.text
    data = res.json()
    assert data["state"] == "resolved"
    assert data["record"]["model"] == "Spicy Miso"
    assert data["record"]["backdrop"]["hex"]["edgeColor"] == "#000"
    assert data["record"]["total_issued"] == 98765
    assert data["image_url"].endswith("/model/instant-ramen/Spicy Miso.png?size=256")
    assert data["models"] == [{"name": "Spicy Miso", "rarityPermille": 12}]


def test_resolve_rejects_malformed_link(api_client):
    client, _ = api_client
    res = client.get("/api/resolve", params={"link": "not a link"})
    assert res.status_code == 422
    assert res.json()["detail"] == STATUS_INVALID_LINK


def test_list_gifts(api_client):
    client, _ = api_client
    res = client.get("/api/gifts")
    assert res.status_code == 200
    assert res.json() == ["Instant Ramen", "Santa Hat"]


def test_gift_detail_uses_original_artwork(api_client):
    client, _ = api_client
    res = client.get("/api/gifts/Instant Ramen")
    assert res.status_code == 200
    data = res.json()
    assert data["gift_id"] == "6008131131440037007"
    assert data["image_url"].endswith("/original/6008131131440037007.png?size=256")


def test_proxy_requires_url(api_client):
    client, _ = api_client
    res = client.get("/api/proxy")
    assert res.status_code == 400


@pytest.mark.parametrize(
    "url,status",
    [
        ("not a url", 400),
        ("https://example.com/nft/InstantRamen-42", 403),
        ("https://t.me/durov", 403),
        ("https://t.me.evil.com/nft/InstantRamen-42", 403),
    ],
)
def test_proxy_rejects_foreign_targets(api_client, monkeypatch, url, status):
    client, _ = api_client

    def fail_get(*_args, **_kwargs):  # pragma: no cover - must not be reached
        raise AssertionError("Unexpected HTTP request")

    monkeypatch.setattr(requests, "get", fail_get)
    res = client.get("/api/proxy", params={"url": url})
    assert res.status_code == status


def test_proxy_relays_page(api_client, monkeypatch):
    client, _ = api_client
    called = {}

    def fake_get(url, headers=None, timeout=None):
        called["url"] = url
        called["headers"] = headers
        return types.SimpleNamespace(status_code=200, text="<html>gift page</html>")

    monkeypatch.setattr(requests, "get", fake_get)
    res = client.get(
        "/api/proxy",
        params={"url": "https://user:pw@t.me/nft/InstantRamen-42?x=1"},
        headers={"Origin": "https://web.telegram.org"},
    )
    assert res.status_code == 200
    assert res.text == "<html>gift page</html>"
    assert called["url"] == "https://t.me/nft/InstantRamen-42"
    assert "NFT Gift Planner" in called["headers"]["User-Agent"]
    assert res.headers["access-control-allow-origin"] == "*"
    assert res.headers["x-content-type-options"] == "nosniff"


def test_proxy_passes_upstream_errors(api_client, monkeypatch):
    client, _ = api_client
    monkeypatch.setattr(
        requests,
        "get",
        lambda url, headers=None, timeout=None: types.SimpleNamespace(status_code=404, text=""),
    )
    res = client.get("/api/proxy", params={"url": "https://t.me/nft/InstantRamen-42"})
    assert res.status_code == 404
    assert "404" in res.json()["detail"]


def test_proxy_transport_failure_is_bad_gateway(api_client, monkeypatch):
    client, _ = api_client

    def broken_get(*_args, **_kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", broken_get)
    res = client.get("/api/proxy", params={"url": "https://t.me/nft/InstantRamen-42"})
    assert res.status_code == 502


def test_lifespan_shares_one_cache():
    import server

    with TestClient(server.app):
        state = server.app.state
        assert state.resolver.catalog.cache is state.cache
        assert state.resolver.relay.cache is state.cache
        assert state.animations.cache is state.cache


def test_animation_for_model(api_client):
    client, server = api_client
    res = client.get("/api/animation", params={"gift": "Instant Ramen", "model": "Spicy Miso"})
    assert res.status_code == 200
    assert res.json()["fr"] == 60
    assert server.app.state.animations.calls == [("Instant Ramen", "Spicy Miso", None)]


def test_animation_unavailable(api_client):
    client, _ = api_client
    res = client.get("/api/animation", params={"gift": "Instant Ramen", "gift_id": "42"})
    assert res.status_code == 404


def test_animation_needs_model_or_gift_id(api_client):
    client, _ = api_client
    res = client.get("/api/animation", params={"gift": "Instant Ramen"})
    assert res.status_code == 400
