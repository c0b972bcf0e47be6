from botocore.exceptions import ClientError, EndpointConnectionError
from fastapi import status
from fastapi.testclient import TestClient

from files_proxy.main import create_app
from files_proxy.settings import Settings
from tests.consts import TEST_BUCKET_NAME, TEST_REGION


class UnreachableS3Client:
    """Stands in for a client whose endpoint cannot be reached."""

    def __getattr__(self, name):
        def _fail(*args, **kwargs):
            raise EndpointConnectionError(endpoint_url="http://s3.unreachable.invalid")
        return _fail


class StubS3Client:
    """Returns a canned get_object response or raises a canned error."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error

    def get_object(self, **kwargs):
        if self.error:
            raise self.error
        return self.response


def access_denied(operation_name: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
        operation_name,
    )


def make_client(settings: Settings, s3_client) -> TestClient:
    return TestClient(create_app(settings=settings, s3_client=s3_client))


def test__upload__without_file_part(client: TestClient, mocked_aws, storage_dir):
    response = client.post("/upload")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"detail": "No file uploaded"}
    assert list(storage_dir.iterdir()) == []
    assert mocked_aws.list_objects_v2(Bucket=TEST_BUCKET_NAME)["KeyCount"] == 0


def test__upload__form_without_file_field(client: TestClient, storage_dir):
    response = client.post("/upload", data={"note": "no file here"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert list(storage_dir.iterdir()) == []


def test__upload__file_field_sent_as_text(client: TestClient, mocked_aws, storage_dir):
    response = client.post("/upload", data={"file": "not a file"})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"detail": "No file uploaded"}
    assert list(storage_dir.iterdir()) == []
    assert mocked_aws.list_objects_v2(Bucket=TEST_BUCKET_NAME)["KeyCount"] == 0


def test__upload__filename_too_long(client: TestClient, mocked_aws, storage_dir):
    response = client.post("/upload", files={"file": ("a" * 250 + ".txt", b"hi", "text/plain")})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"].startswith("Filename too long")
    assert list(storage_dir.iterdir()) == []
    assert mocked_aws.list_objects_v2(Bucket=TEST_BUCKET_NAME)["KeyCount"] == 0


def test__upload__unexpected_mirror_error_rolls_back_local_copy(settings, storage_dir):
    class BrokenS3Client:
        def put_object(self, **kwargs):
            raise RuntimeError("client bug")

    client = make_client(settings, BrokenS3Client())

    response = client.post("/upload", files={"file": ("hello.txt", b"hi", "text/plain")})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Internal server error"}
    assert list(storage_dir.iterdir()) == []


def test__upload__bucket_missing_rolls_back_local_copy(mocked_aws, storage_dir):
    settings = Settings(
        storage_dir=str(storage_dir),
        s3_bucket_name="bucket-that-does-not-exist",
        aws_region=TEST_REGION,
    )
    with TestClient(create_app(settings=settings)) as client:
        response = client.post("/upload", files={"file": ("hello.txt", b"hi", "text/plain")})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Internal server error"}
    assert list(storage_dir.iterdir()) == []


def test__upload__unreachable_bucket_rolls_back_local_copy(settings, storage_dir):
    client = make_client(settings, UnreachableS3Client())

    response = client.post("/upload", files={"file": ("hello.txt", b"hi", "text/plain")})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "unreachable" not in response.text
    assert list(storage_dir.iterdir()) == []


def test__get_file__unknown_identifier(client: TestClient):
    response = client.get("/file/1700000000000-never-uploaded.txt")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"detail": "File '1700000000000-never-uploaded.txt' not found"}


def test__get_file__local_copy_served_when_bucket_unreachable(settings, storage_dir):
    identifier = "1700000000000-cached.txt"
    storage_dir.mkdir(parents=True, exist_ok=True)
    (storage_dir / identifier).write_bytes(b"cached")
    client = make_client(settings, UnreachableS3Client())

    response = client.get(f"/file/{identifier}")

    assert response.status_code == status.HTTP_200_OK
    assert response.content == b"cached"


def test__get_file__unreachable_bucket_on_miss(settings):
    client = make_client(settings, UnreachableS3Client())

    response = client.get("/file/1700000000000-missing.txt")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Internal server error"}


def test__get_file__bucket_access_denied(settings):
    client = make_client(settings, StubS3Client(error=access_denied("GetObject")))

    response = client.get("/file/1700000000000-secret.txt")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert "AccessDenied" not in response.text


def test__get_file__object_without_body_is_not_found(settings):
    client = make_client(settings, StubS3Client(response={"ContentType": "text/plain"}))

    response = client.get("/file/1700000000000-empty.txt")

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test__get_file__rejects_path_traversal(settings, tmp_path):
    (tmp_path / "secret.txt").write_bytes(b"do not serve")
    client = make_client(settings, UnreachableS3Client())

    response = client.get("/file/..%5Csecret.txt")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"].startswith("Invalid identifier")


def test__get_file__identifier_too_long(settings):
    client = make_client(settings, UnreachableS3Client())

    response = client.get(f"/file/1700000000000-{'a' * 300}.txt")

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test__health__degraded_when_bucket_missing(mocked_aws, storage_dir):
    settings = Settings(
        storage_dir=str(storage_dir),
        s3_bucket_name="bucket-that-does-not-exist",
        aws_region=TEST_REGION,
    )
    with TestClient(create_app(settings=settings)) as client:
        response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "degraded"
    assert data["ready"] is False
    assert data["components"]["local_storage"] == "ready"
    assert data["components"]["remote_storage"].startswith("error")
