"""
Video search proxies, the media stream proxy and the CDN inspector.
"""

import re

YOUTUBE_SEARCH = re.compile(r"https://www\.googleapis\.com/youtube/v3/search\?.*")
INVIDIOUS = "https://inv.example"


def test_youtube_search_requires_query(make_client):
    client = make_client(YOUTUBE_API_KEY="y-key")

    response = client.post("/youtube/search", json={"q": "  "})

    assert response.status_code == 400


def test_youtube_search_unconfigured(client):
    response = client.post("/youtube/search", json={"q": "lofi"})

    assert response.status_code == 503


def test_youtube_search_passes_results_through(make_client, httpx_mock):
    client = make_client(YOUTUBE_API_KEY="y-key")
    httpx_mock.add_response(method="GET", url=YOUTUBE_SEARCH, json={"items": [{"id": {"videoId": "v1"}}]})

    response = client.post("/youtube/search", json={"q": "lofi"})

    assert response.status_code == 200
    assert response.json() == {"items": [{"id": {"videoId": "v1"}}]}
    assert "y-key" not in response.text


def test_youtube_search_upstream_error(make_client, httpx_mock):
    client = make_client(YOUTUBE_API_KEY="y-key")
    httpx_mock.add_response(method="GET", url=YOUTUBE_SEARCH, status_code=403, json={"error": {}})

    response = client.post("/youtube/search", json={"q": "lofi"})

    assert response.status_code == 502


def test_invidious_search(make_client, httpx_mock):
    client = make_client(INVIDIOUS_BASE=INVIDIOUS)
    httpx_mock.add_response(
        method="GET",
        url=re.compile(r"https://inv\.example/api/v1/search\?.*"),
        json=[{"videoId": "v1"}],
    )

    response = client.post("/invidious/search", json={"q": "lofi"})

    assert response.status_code == 200
    assert response.json() == [{"videoId": "v1"}]
    assert httpx_mock.get_request().url.params["type"] == "video"


def test_invidious_search_requires_query(client):
    assert client.post("/invidious/search", json={}).status_code == 400


def test_invidious_popular_failure(make_client, httpx_mock):
    client = make_client(INVIDIOUS_BASE=INVIDIOUS)
    httpx_mock.add_response(method="GET", url=f"{INVIDIOUS}/api/v1/popular", status_code=500)

    response = client.get("/invidious/popular")

    assert response.status_code == 502


def test_proxy_forwards_range(client, httpx_mock):
    httpx_mock.add_response(
        method="GET",
        url="https://cdn.assemblyai.com/upload/abc",
        status_code=206,
        content=b"0123",
        headers={
            "Content-Type": "video/mp4",
            "Content-Range": "bytes 0-3/100",
            "Accept-Ranges": "bytes",
        },
    )

    response = client.get(
        "/proxy/video",
        params={"src": "https://cdn.assemblyai.com/upload/abc"},
        headers={"Range": "bytes=0-3"},
    )

    assert response.status_code == 206
    assert response.content == b"0123"
    assert response.headers["content-range"] == "bytes 0-3/100"
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["cross-origin-resource-policy"] == "same-site"
    assert httpx_mock.get_request().headers["Range"] == "bytes=0-3"


def test_proxy_rejects_non_https(client):
    assert client.get("/proxy/video").status_code == 400
    assert client.get("/proxy/video", params={"src": "http://cdn.example/a.mp4"}).status_code == 400


def test_inspect_rejects_other_hosts(client):
    response = client.get("/debug/inspect", params={"src": "https://evil.example/a.mp4"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Host not allowed for inspection"
