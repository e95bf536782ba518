import boto3
from botocore.exceptions import ClientError
from typing import Optional
import os
import uuid
from datetime import datetime
from atelier.config import settings
import logging

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a blob cannot be written or read"""


class StorageService:
    """Service for handling object storage (S3-compatible) operations"""

    def __init__(self, local_storage_dir: Optional[str] = None):
        self.bucket_name = settings.storage_bucket_name
        self.public_base_url = settings.storage_public_base_url

        # Require both access key and secret key to use S3
        if settings.storage_access_key_id and settings.storage_secret_access_key:
            s3_config = {
                'aws_access_key_id': settings.storage_access_key_id,
                'aws_secret_access_key': settings.storage_secret_access_key,
            }
            if settings.storage_endpoint_url:
                s3_config['endpoint_url'] = settings.storage_endpoint_url
            if settings.storage_region:
                s3_config['region_name'] = settings.storage_region

            try:
                self.s3_client = boto3.client('s3', **s3_config)
                logger.info("S3 storage initialized successfully")
            except Exception as e:
                logger.warning(f"Failed to initialize S3 client, falling back to local storage: {str(e)}")
                self.s3_client = None
        else:
            logger.info("No S3 credentials found, using local filesystem storage")
            self.s3_client = None

        self.local_storage_dir = os.path.abspath(local_storage_dir or settings.local_storage_dir)
        try:
            os.makedirs(self.local_storage_dir, exist_ok=True)
            logger.info(f"Local storage directory initialized: {self.local_storage_dir}")
        except Exception as e:
            logger.error(f"Failed to create local storage directory: {str(e)}")
            raise

    def get_content_type(self, filename: str) -> str:
        """Determine content type based on file extension"""
        ext = filename.lower().split('.')[-1] if '.' in filename else ''
        content_types = {
            'png': 'image/png',
            'jpg': 'image/jpeg',
            'jpeg': 'image/jpeg',
            'gif': 'image/gif',
            'bmp': 'image/bmp',
            'webp': 'image/webp',
            'tiff': 'image/tiff',
            'tif': 'image/tiff',
            'heic': 'image/heic',
            'pdf': 'application/pdf',
        }
        return content_types.get(ext, 'application/octet-stream')

    def build_storage_path(self, user_id: str, filename: str, randomize: bool = True) -> str:
        """
        Build a user-scoped object key: ``{user_id}/{timestamp}_{random}.{ext}``

        Args:
            user_id: Owner of the file
            filename: Original filename (only the extension is kept)
            randomize: Append a random suffix so parallel uploads never collide
        """
        timestamp = int(datetime.utcnow().timestamp() * 1000)
        file_ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'
        name = f"{timestamp}_{uuid.uuid4().hex[:12]}" if randomize else str(timestamp)
        return f"{user_id}/{name}.{file_ext}"

    def upload_file(self, file_content: bytes, storage_path: str) -> str:
        """
        Upload a file to object storage under ``storage_path``

        Returns:
            The storage path, for use with get_public_url/download_file
        """
        content_type = self.get_content_type(storage_path)

        if self.s3_client:
            try:
                self.s3_client.put_object(
                    Bucket=self.bucket_name,
                    Key=storage_path,
                    Body=file_content,
                    ContentType=content_type
                )
                return storage_path
            except ClientError as e:
                raise StorageError(f"Failed to upload to S3: {str(e)}")

        try:
            local_path = self._local_path(storage_path)
            os.makedirs(os.path.dirname(local_path), exist_ok=True)
            with open(local_path, 'wb') as f:
                f.write(file_content)
            logger.info(f"File saved to local storage: {local_path}")
            return storage_path
        except OSError as e:
            logger.error(f"Failed to save file to local storage: {str(e)}")
            raise StorageError(f"Failed to save file: {str(e)}")

    def upload_user_file(self, file_content: bytes, filename: str, user_id: str, randomize: bool = True) -> str:
        """Upload under a fresh user-scoped path and return that path"""
        storage_path = self.build_storage_path(user_id, filename, randomize=randomize)
        return self.upload_file(file_content, storage_path)

    def get_public_url(self, storage_path: str) -> str:
        """
        Public URL of a stored object. The OCR function fetches images from here.
        """
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{storage_path}"
        if self.s3_client:
            if settings.storage_endpoint_url:
                return f"{settings.storage_endpoint_url.rstrip('/')}/{self.bucket_name}/{storage_path}"
            return f"https://{self.bucket_name}.s3.{settings.storage_region}.amazonaws.com/{storage_path}"
        # Local storage is served by the API storage route
        return f"/api/storage/{storage_path}"

    def storage_path_from_url(self, url: Optional[str]) -> Optional[str]:
        """Inverse of get_public_url for URLs we issued; None for anything else"""
        if not url:
            return None
        prefixes = ["/api/storage/"]
        if self.public_base_url:
            prefixes.append(f"{self.public_base_url.rstrip('/')}/")
        if settings.storage_endpoint_url:
            prefixes.append(f"{settings.storage_endpoint_url.rstrip('/')}/{self.bucket_name}/")
        prefixes.append(f"https://{self.bucket_name}.s3.{settings.storage_region}.amazonaws.com/")
        for prefix in prefixes:
            if url.startswith(prefix):
                return url[len(prefix):]
        return None

    def _local_path(self, storage_path: str) -> str:
        local_path = os.path.abspath(os.path.join(self.local_storage_dir, storage_path))
        if not local_path.startswith(self.local_storage_dir + os.sep):
            raise FileNotFoundError(f"File not found: {storage_path}")
        return local_path

    def download_file(self, storage_path: str) -> bytes:
        """
        Download a file from storage

        Args:
            storage_path: Storage path/key

        Returns:
            Binary content of the file
        """
        if self.s3_client:
            try:
                response = self.s3_client.get_object(
                    Bucket=self.bucket_name,
                    Key=storage_path
                )
                return response['Body'].read()
            except ClientError as e:
                raise StorageError(f"Failed to download from S3: {str(e)}")

        local_file_path = self._local_path(storage_path)
        if not os.path.exists(local_file_path):
            raise FileNotFoundError(f"File not found: {local_file_path}")

        try:
            with open(local_file_path, 'rb') as f:
                return f.read()
        except OSError as e:
            logger.error(f"Failed to read file from local storage: {str(e)}")
            raise StorageError(f"Failed to read file: {str(e)}")


storage_service = StorageService()


def get_storage_service() -> StorageService:
    return storage_service
