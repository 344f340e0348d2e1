"""Test the HTTP endpoints end to end against a SQLite database."""
import pytest
from fastapi.testclient import TestClient

from tagalbum.core.exceptions import DetectionError
from tagalbum.main import create_app
from tagalbum.routers.images import get_detector


class FakeDetector:
    def __init__(self, tags=None, error=None):
        self.tags = tags or []
        self.error = error
        self.calls = []

    async def detect(self, image_input):
        self.calls.append(image_input)
        if self.error:
            raise self.error
        return list(self.tags)


@pytest.fixture
def detector():
    return FakeDetector(tags=["cat", "dog"])


@pytest.fixture
def client(settings, detector):
    app = create_app(settings)
    app.dependency_overrides[get_detector] = lambda: detector
    with TestClient(app) as client:
        yield client


def post_url(client, url="http://example.com/cat.jpg", **extra):
    return client.post("/images", json={"image_url": url, "object_detection": False, **extra})


def test_read_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Welcome to TagAlbum API"}


def test_post_image_without_detection(client, detector):
    response = post_url(client)

    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "http://example.com/cat.jpg"
    assert body["label"] == "An untagged image"
    assert body["tags"] == []
    assert detector.calls == []


def test_post_image_with_detection(client, detector):
    response = post_url(client, object_detection=True)

    assert response.status_code == 200
    body = response.json()
    assert sorted(body["tags"]) == ["cat", "dog"]
    assert body["label"] == "An image containing cat, dog."
    assert len(detector.calls) == 1


def test_post_image_with_label(client):
    response = post_url(client, label="Garden")
    assert response.json()["label"] == "Garden"


def test_post_base64_image(client, png_base64):
    response = client.post(
        "/images", json={"image_base64": png_base64, "object_detection": False}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["url"] == f"http://localhost:3000/files/{body['id']}.png"

    stored = client.get(f"/files/{body['id']}.png")
    assert stored.status_code == 200
    assert stored.headers["content-type"] == "image/png"


def test_post_requires_exactly_one_source(client):
    both = client.post(
        "/images",
        json={"image_url": "http://example.com/a.png", "image_base64": "aGVsbG8=", "object_detection": False},
    )
    neither = client.post("/images", json={"object_detection": False})

    assert both.status_code == 400
    assert both.json()["code"] == "invalid_input"
    assert neither.status_code == 400


def test_invalid_base64_is_rejected(client):
    response = client.post("/images", json={"image_base64": "###", "object_detection": False})

    assert response.status_code == 400
    assert client.get("/images").json() == []


def test_detection_failure_creates_nothing(client, detector):
    detector.error = DetectionError("Received error 400 from Imagga: bad image", status_code=400)

    response = post_url(client, object_detection=True)

    assert response.status_code == 400
    assert response.json()["code"] == "collaborator"
    assert client.get("/images").json() == []


def test_get_image_by_id(client):
    image_id = post_url(client, object_detection=True).json()["id"]

    response = client.get(f"/image/{image_id}")
    assert response.status_code == 200
    assert sorted(response.json()["tags"]) == ["cat", "dog"]


def test_get_missing_image(client):
    response = client.get("/image/12345")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_filter_images(client, detector):
    pets = post_url(client, "http://example.com/pets.jpg", object_detection=True).json()["id"]
    detector.tags = ["cat"]
    cat = post_url(client, "http://example.com/cat.jpg", object_detection=True).json()["id"]
    detector.tags = ["bird"]
    bird = post_url(client, "http://example.com/bird.jpg", object_detection=True).json()["id"]

    def ids(query):
        response = client.get("/images", params=query)
        assert response.status_code == 200
        return sorted(image["id"] for image in response.json())

    assert ids({}) == sorted([pets, cat, bird])
    assert ids({"objects": "cat,dog"}) == [pets]
    assert ids({"objects": "cat,dog,bird"}) == []
    assert ids({"some_objects": "bird"}) == [bird]
    assert ids({"some_objects": "cat"}) == sorted([pets, cat])
    # An empty list means no constraint
    assert ids({"objects": ""}) == sorted([pets, cat, bird])


def test_filter_rejects_both_lists(client):
    response = client.get("/images", params={"objects": "cat", "some_objects": "dog"})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_input"


def test_filter_names_are_not_trimmed(client, detector):
    detector.tags = [" cat"]
    spaced = post_url(client, object_detection=True).json()["id"]

    def ids(query):
        return [image["id"] for image in client.get("/images", params=query).json()]

    assert ids({"objects": " cat"}) == [spaced]
    assert ids({"some_objects": " cat"}) == [spaced]
    assert ids({"objects": "cat"}) == []


def test_restarted_app_mounts_files_once(settings):
    app = create_app(settings)
    with TestClient(app):
        pass
    with TestClient(app) as client:
        assert client.get("/").status_code == 200

    mounts = [route for route in app.routes if getattr(route, "name", None) == "files"]
    assert len(mounts) == 1
