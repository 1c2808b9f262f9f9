import io

import pytest
from botocore.exceptions import ClientError

from exam_service.core.exceptions import FileValidationError, StorageError
from exam_service.services.storage import LocalFileStorage, S3FileStorage, validate_extension


def test_validate_extension_is_case_insensitive():
    assert validate_extension("Sheet.PDF") == ".pdf"


@pytest.mark.parametrize("filename", ["notes.exe", "archive.zip", "no_extension"])
def test_validate_extension_rejects(filename):
    with pytest.raises(FileValidationError):
        validate_extension(filename)


class TestLocalFileStorage:
    def test_save_download_delete(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        path = storage.save(b"page-bytes", "page1.PNG", "exam-1", "student-1")

        assert path.startswith(str(tmp_path))
        assert path.endswith(".png")
        assert "exam-1_student-1_" in path
        assert storage.download(path) == b"page-bytes"
        assert storage.delete(path) is True
        assert storage.delete(path) is False

    def test_unique_names(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        first = storage.save(b"a", "page.jpg", "e", "s")
        second = storage.save(b"b", "page.jpg", "e", "s")

        assert first != second

    def test_rejected_file_not_written(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        with pytest.raises(FileValidationError):
            storage.save(b"MZ", "virus.exe", "e", "s")
        assert list(tmp_path.iterdir()) == []

    def test_delete_failure_raises_storage_error(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))
        (tmp_path / "not-a-file.jpg").mkdir()

        with pytest.raises(StorageError):
            storage.delete(str(tmp_path / "not-a-file.jpg"))

    def test_download_missing(self, tmp_path):
        with pytest.raises(StorageError):
            LocalFileStorage(str(tmp_path)).download(str(tmp_path / "gone.jpg"))


class FakeS3Client:
    def __init__(self, fail=False):
        self.objects = {}
        self.fail = fail

    def _maybe_fail(self, operation):
        if self.fail:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)

    def put_object(self, Bucket, Key, Body):
        self._maybe_fail("PutObject")
        self.objects[(Bucket, Key)] = Body

    def get_object(self, Bucket, Key):
        self._maybe_fail("GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def delete_object(self, Bucket, Key):
        self._maybe_fail("DeleteObject")
        self.objects.pop((Bucket, Key), None)


class TestS3FileStorage:
    def test_round_trip(self):
        client = FakeS3Client()
        storage = S3FileStorage(bucket="answers", client=client)

        path = storage.save(b"scan", "sheet.pdf", "exam-1", "student-1")

        assert path.startswith("s3://answers/written-answers/exam-1/exam-1_student-1_")
        assert storage.download(path) == b"scan"
        assert storage.delete(path) is True
        assert client.objects == {}

    def test_client_errors_become_storage_errors(self):
        storage = S3FileStorage(bucket="answers", client=FakeS3Client(fail=True))

        with pytest.raises(StorageError):
            storage.save(b"scan", "sheet.pdf", "exam-1", "student-1")
        with pytest.raises(StorageError):
            storage.delete("s3://answers/written-answers/exam-1/x.pdf")

    def test_bucket_required(self, monkeypatch):
        from exam_service.core.config import settings

        monkeypatch.setattr(settings, "S3_BUCKET_NAME", None)
        with pytest.raises(StorageError):
            S3FileStorage(client=FakeS3Client())
