import io
from datetime import timedelta
from pathlib import Path
from typing import Optional
from abc import ABC, abstractmethod
import aiofiles
from loguru import logger
from minio import Minio
from minio.error import S3Error
from starlette.concurrency import run_in_threadpool

from clinic_api.config import Settings
from clinic_api.core.errors import StorageError
from clinic_api.utils.io_helpers import AuthHelper

class StorageClient(ABC):
    @abstractmethod
    async def upload_file(self, key: str, file_content: bytes, content_type: str) -> str:
        pass

    @abstractmethod
    async def download_file(self, key: str) -> Optional[bytes]:
        pass

    @abstractmethod
    async def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        pass

    @abstractmethod
    async def delete_file(self, key: str) -> bool:
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    async def ping(self) -> bool:
        return True

class LocalStorageClient(StorageClient):
    def __init__(self, storage_path: str, url_prefix: str = "/api/v1/files", config: Optional[Settings] = None):
        self.storage_path = Path(storage_path).resolve()
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip("/")
        # Download links are signed with these settings
        self.config = config

    def _path_for(self, key: str) -> Path:
        path = (self.storage_path / key).resolve()
        if self.storage_path not in path.parents:
            raise StorageError(f"Storage key escapes the storage root: {key}")
        return path

    async def upload_file(self, key: str, file_content: bytes, content_type: str) -> str:
        file_path = self._path_for(key)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(file_content)
        except OSError as e:
            logger.error(f"Failed to upload file {key}: {e}")
            raise StorageError("Failed to upload file to storage") from e

        logger.info(f"File uploaded successfully: {key}")
        return key

    async def download_file(self, key: str) -> Optional[bytes]:
        file_path = self._path_for(key)
        if not file_path.is_file():
            logger.warning(f"File not found: {key}")
            return None

        try:
            async with aiofiles.open(file_path, 'rb') as f:
                return await f.read()
        except OSError as e:
            logger.error(f"Failed to download file {key}: {e}")
            raise StorageError("Failed to read file from storage") from e

    async def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        if not self._path_for(key).is_file():
            raise StorageError("Stored file is missing")
        token = AuthHelper.create_download_token(key, expires_in, self.config)
        return f"{self.url_prefix}/{token}"

    async def delete_file(self, key: str) -> bool:
        file_path = self._path_for(key)
        if not file_path.exists():
            return False

        try:
            file_path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete file {key}: {e}")
            raise StorageError("Failed to delete file from storage") from e

        logger.info(f"File deleted: {key}")
        return True

    async def exists(self, key: str) -> bool:
        return self._path_for(key).is_file()

    async def ping(self) -> bool:
        return self.storage_path.is_dir()

class S3StorageClient(StorageClient):
    def __init__(self, endpoint: str, bucket_name: str, access_key: str, secret_key: str, region: str, secure: bool = True):
        self.bucket_name = bucket_name
        self.client = Minio(
            endpoint,
            access_key=access_key,
            secret_key=secret_key,
            region=region,
            secure=secure
        )

    async def ensure_bucket(self) -> None:
        try:
            if not await run_in_threadpool(self.client.bucket_exists, self.bucket_name):
                await run_in_threadpool(self.client.make_bucket, self.bucket_name)
                logger.info(f"Created storage bucket: {self.bucket_name}")
        except Exception as e:
            raise StorageError("Storage bucket is unavailable") from e

    async def upload_file(self, key: str, file_content: bytes, content_type: str) -> str:
        try:
            await run_in_threadpool(
                self.client.put_object,
                self.bucket_name,
                key,
                io.BytesIO(file_content),
                len(file_content),
                content_type=content_type
            )
        except Exception as e:
            logger.error(f"Failed to upload object {key}: {e}")
            raise StorageError("Failed to upload file to storage") from e

        logger.info(f"Object uploaded successfully: {key}")
        return key

    async def download_file(self, key: str) -> Optional[bytes]:
        response = None
        try:
            response = await run_in_threadpool(self.client.get_object, self.bucket_name, key)
            return response.read()
        except S3Error as e:
            if e.code == "NoSuchKey":
                logger.warning(f"Object not found: {key}")
                return None
            raise StorageError("Failed to read file from storage") from e
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    async def get_presigned_url(self, key: str, expires_in: int = 3600) -> str:
        try:
            return await run_in_threadpool(
                self.client.presigned_get_object,
                self.bucket_name,
                key,
                expires=timedelta(seconds=expires_in)
            )
        except Exception as e:
            logger.error(f"Failed to sign object {key}: {e}")
            raise StorageError("Failed to generate download link") from e

    async def delete_file(self, key: str) -> bool:
        try:
            await run_in_threadpool(self.client.remove_object, self.bucket_name, key)
        except Exception as e:
            logger.error(f"Failed to delete object {key}: {e}")
            raise StorageError("Failed to delete file from storage") from e

        logger.info(f"Object deleted: {key}")
        return True

    async def exists(self, key: str) -> bool:
        try:
            await run_in_threadpool(self.client.stat_object, self.bucket_name, key)
            return True
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return False
            raise StorageError("Failed to reach storage") from e

    async def ping(self) -> bool:
        try:
            return await run_in_threadpool(self.client.bucket_exists, self.bucket_name)
        except Exception as e:
            logger.error(f"Storage health check failed: {e}")
            return False

class StorageClientFactory:
    @staticmethod
    def create_client(settings: Settings) -> StorageClient:
        provider = settings.storage_provider.lower()

        if provider == "s3":
            logger.info(f"Using S3 storage client ({settings.s3_endpoint})")
            return S3StorageClient(
                endpoint=settings.s3_endpoint,
                bucket_name=settings.storage_bucket,
                access_key=settings.aws_access_key_id,
                secret_key=settings.aws_secret_access_key,
                region=settings.aws_region,
                secure=settings.s3_use_ssl
            )

        logger.info("Using local storage client")
        return LocalStorageClient(settings.storage_path, config=settings)
