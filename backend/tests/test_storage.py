import pytest

from atelier.services.storage_service import StorageService, storage_service


def test_local_round_trip(storage):
    path = storage.upload_file(b"content", "user-1/123.jpg")

    assert storage.download_file(path) == b"content"
    assert storage.get_public_url(path) == "/api/storage/user-1/123.jpg"
    assert storage.storage_path_from_url("/api/storage/user-1/123.jpg") == "user-1/123.jpg"


def test_foreign_urls_are_not_ours(storage):
    assert storage.storage_path_from_url("https://elsewhere.example.com/x.jpg") is None
    assert storage.storage_path_from_url(None) is None


def test_paths_cannot_escape_storage_dir(storage):
    with pytest.raises(FileNotFoundError):
        storage.download_file("../../etc/passwd")


def test_missing_file(storage):
    with pytest.raises(FileNotFoundError):
        storage.download_file("user-1/nothing.png")


def test_unrandomized_path_is_a_timestamp(storage):
    path = storage.build_storage_path("user-1", "foto.png", randomize=False)

    name = path.split("/", 1)[1]
    assert name.endswith(".png")
    assert name[:-4].isdigit()


def test_content_types():
    service = StorageService.__new__(StorageService)
    assert service.get_content_type("a.HEIC") == "image/heic"
    assert service.get_content_type("a.jpeg") == "image/jpeg"
    assert service.get_content_type("noext") == "application/octet-stream"


def test_storage_route_serves_files(client):
    storage_service.upload_file(b"served", "user-1/route-test.png")

    response = client.get("/api/storage/user-1/route-test.png")

    assert response.status_code == 200
    assert response.content == b"served"
    assert client.get("/api/storage/user-1/missing.png").status_code == 404
