import pytest

from clinic_api.config import settings
from clinic_api.core.errors import StorageError
from clinic_api.core.storage import LocalStorageClient, S3StorageClient, StorageClientFactory
from clinic_api.utils.io_helpers import AuthHelper

class TestLocalStorageClient:

    @pytest.mark.asyncio
    async def test_upload_download_delete(self, storage):
        await storage.upload_file("7/abc-report.pdf", b"%PDF", "application/pdf")

        assert await storage.exists("7/abc-report.pdf")
        assert await storage.download_file("7/abc-report.pdf") == b"%PDF"
        assert await storage.delete_file("7/abc-report.pdf") is True
        assert await storage.delete_file("7/abc-report.pdf") is False
        assert await storage.download_file("7/abc-report.pdf") is None

    @pytest.mark.asyncio
    async def test_presigned_url_carries_download_token(self, storage):
        await storage.upload_file("7/abc-report.pdf", b"%PDF", "application/pdf")

        url = await storage.get_presigned_url("7/abc-report.pdf", expires_in=60)

        assert url.startswith("/api/v1/files/")
        assert AuthHelper.verify_download_token(url.rsplit("/", 1)[1]) == "7/abc-report.pdf"

    @pytest.mark.asyncio
    async def test_presigned_url_for_missing_file(self, storage):
        with pytest.raises(StorageError):
            await storage.get_presigned_url("7/missing.pdf")

    @pytest.mark.asyncio
    async def test_keys_cannot_escape_root(self, storage):
        with pytest.raises(StorageError):
            await storage.upload_file("../outside.pdf", b"%PDF", "application/pdf")

        with pytest.raises(StorageError):
            await storage.download_file("7/../../outside.pdf")

    @pytest.mark.asyncio
    async def test_ping(self, storage):
        assert await storage.ping() is True

def test_access_token_is_not_a_download_token():
    token = AuthHelper.create_access_token(1, "doctor")
    assert AuthHelper.verify_download_token(token) is None

def test_expired_download_token():
    token = AuthHelper.create_download_token("7/a.pdf", expires_in=-1)
    assert AuthHelper.verify_download_token(token) is None

def test_factory_picks_provider(tmp_path):
    local = StorageClientFactory.create_client(settings.model_copy(update={"storage_path": str(tmp_path)}))
    assert isinstance(local, LocalStorageClient)

    s3 = StorageClientFactory.create_client(settings.model_copy(update={
        "storage_provider": "s3",
        "s3_endpoint": "localhost:9000",
        "aws_access_key_id": "minio",
        "aws_secret_access_key": "minio-secret",
        "s3_use_ssl": False,
    }))
    assert isinstance(s3, S3StorageClient)
    assert s3.bucket_name == "diagnostics"
