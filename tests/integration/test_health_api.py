import pytest


def test_index(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["notes"] == "/api/notes"


def test_liveness(client):
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_readiness(client):
    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json()["checks"] == {"database": "ok", "blob_storage": "ok"}


def test_readiness_fails_without_upload_dir(client, upload_dir):
    upload_dir.rmdir()

    response = client.get("/health/ready")

    assert response.status_code == 503
    body = response.json()
    assert body["error"]["code"] == "NOT_READY"
    assert body["error"]["details"]["checks"]["blob_storage"] == "failed"


@pytest.mark.parametrize("path", ["/health/live", "/health/ready"])
def test_health_needs_no_token(client, path):
    assert client.get(path).status_code == 200
