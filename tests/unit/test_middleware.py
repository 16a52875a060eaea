"""
Tests for the site access gate, cross-origin isolation headers and request IDs.
"""

import base64

import pytest


def _basic(value: str) -> str:
    return "Basic " + base64.b64encode(value.encode()).decode()


@pytest.fixture
def gated_client(make_client):
    return make_client(SITE_ACCESS_SECRET="s3cret\n")


def test_open_when_no_secret(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert "X-Request-ID" in response.headers


def test_missing_credentials_get_basic_challenge(gated_client):
    response = gated_client.get("/healthz")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == 'Basic realm="Protected"'


@pytest.mark.parametrize(
    "header",
    [
        _basic("anyone:s3cret"),
        _basic("s3cret"),
        "Bearer s3cret",
    ],
)
def test_accepted_credentials(gated_client, header):
    response = gated_client.get("/healthz", headers={"Authorization": header})

    assert response.status_code == 200


@pytest.mark.parametrize(
    "header",
    [
        _basic("anyone:wrong"),
        "Bearer wrong",
        "Basic not-base64!!",
        "Digest s3cret",
    ],
)
def test_rejected_credentials(gated_client, header):
    response = gated_client.get("/healthz", headers={"Authorization": header})

    assert response.status_code == 401


def test_cross_origin_isolation_headers_only_when_enabled(make_client):
    plain = make_client().get("/healthz")
    isolated = make_client(ENABLE_CROSS_ORIGIN_ISOLATION=True).get("/healthz")

    assert "Cross-Origin-Opener-Policy" not in plain.headers
    assert isolated.headers["Cross-Origin-Opener-Policy"] == "same-origin"
    assert isolated.headers["Cross-Origin-Embedder-Policy"] == "require-corp"


def test_upstream_request_id_is_echoed(client):
    response = client.get("/healthz", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
