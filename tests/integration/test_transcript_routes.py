"""
Transcript status and provider discovery endpoints.
"""

STATUS_URL = "https://api.assemblyai.com/v2/transcript/tr_1"


def test_status_without_assembly_key(client):
    response = client.get("/transcript/status/tr_1")

    assert response.status_code == 400
    assert "ASSEMBLY_API_KEY" in response.json()["detail"]


def test_status_is_normalized(make_client, httpx_mock):
    client = make_client(ASSEMBLY_API_KEY="a-key")
    httpx_mock.add_response(
        method="GET", url=STATUS_URL, json={"id": "tr_1", "status": "processing", "text": None}
    )

    response = client.get("/transcript/status/tr_1")

    assert response.status_code == 200
    assert response.json() == {
        "id": "tr_1",
        "status": "pending",
        "providerStatus": "processing",
        "text": None,
        "error": None,
    }


def test_completed_status_carries_text(make_client, httpx_mock):
    client = make_client(ASSEMBLY_API_KEY="a-key")
    httpx_mock.add_response(
        method="GET", url=STATUS_URL, json={"id": "tr_1", "status": "completed", "text": "done"}
    )

    data = client.get("/transcript/status/tr_1").json()

    assert data["status"] == "completed"
    assert data["text"] == "done"


def test_status_upstream_failure(make_client, httpx_mock):
    client = make_client(ASSEMBLY_API_KEY="a-key")
    httpx_mock.add_response(
        method="GET", url=STATUS_URL, status_code=404, json={"error": "Transcript not found"}
    )

    response = client.get("/transcript/status/tr_1")

    assert response.status_code == 502
    assert response.json()["detail"]["details"] == {"error": "Transcript not found"}


def test_provider_reports_priority(make_client):
    assert make_client().get("/transcript/provider").json() == {"provider": "none"}
    assert make_client(GOOGLE_API_KEY="g").get("/transcript/provider").json() == {"provider": "google"}
    assert make_client(GOOGLE_API_KEY="g", ASSEMBLY_API_KEY="a").get(
        "/transcript/provider"
    ).json() == {"provider": "assembly"}
